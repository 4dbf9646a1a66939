from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

from .draw import build_ranges, compute_ticket, find_winner
from .lottery import Lottery


def audit_record(lottery: Lottery) -> Dict[str, Any]:
    """Everything needed to re-run the draw of a closed lottery."""
    if lottery.is_open:
        raise RuntimeError(f"Lottery {lottery.lottery_id} has not been drawn yet")

    ranges, total_tickets = build_ranges((p, lottery.weights[p]) for p in lottery.participants)
    return {
        "metadata": {
            "tool": "yield-lottery",
            "version": "1.0.0",
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "lottery_id": lottery.lottery_id,
            "escrow_address": lottery.escrow_address,
            "total_tickets": total_tickets,
            "winning_ticket": lottery.winning_ticket,
            "payout_amount": lottery.payout_amount,
            "yield_earned": lottery.yield_earned,
            "randomness": lottery.seed_info,
        },
        "winner": {
            "address": lottery.winning_address,
            "weight": lottery.weights.get(lottery.winning_address, 0),
        },
        # Insertion order is part of the draw: ranges are laid out in it.
        "all_entrants": [
            {
                "address": r.address,
                "weight": r.weight,
                "start_ticket": r.start_ticket,
                "end_ticket": r.end_ticket,
            }
            for r in ranges
        ],
    }


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    total_expected = int(meta["total_tickets"])
    ticket = int(meta["winning_ticket"])

    eligible = [(e["address"], int(e["weight"])) for e in audit["all_entrants"]]
    ranges, total = build_ranges(eligible)
    if total != total_expected:
        raise RuntimeError(
            f"Total tickets mismatch: audit={total_expected} recomputed={total}"
        )

    randomness = meta.get("randomness") or {}
    seed = randomness.get("seed_blockhash")
    if seed:
        recomputed, _, _ = compute_ticket(seed, total)
        if recomputed != ticket:
            raise RuntimeError(
                f"Winning ticket mismatch: audit={ticket} recomputed={recomputed}"
            )

    winner = find_winner(ranges, ticket)
    winner_expected = audit["winner"]["address"]
    if winner.address != winner_expected:
        raise RuntimeError(
            f"Winner mismatch: audit={winner_expected} recomputed={winner.address}"
        )

    return {
        "ok": True,
        "lottery_id": meta["lottery_id"],
        "winner": winner.address,
        "winning_ticket": ticket,
        "total_tickets": total,
        "seed_checked": bool(seed),
    }
