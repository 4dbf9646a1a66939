from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Callable, List, Optional

from .config import Settings
from .draw import to_tokens
from .errors import LotteryError
from .escrow import SigningContext, user_account
from .randomness import BlockhashRandomness, FixedRandomness, SystemRandomness
from .state import World, load_state, save_state
from .verify import audit_record, verify_audit


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        admin_override=args.admin,
        state_file_override=args.state,
        rpc_url_override=args.rpc_url,
    )


def _run(args: argparse.Namespace, action: Callable[[World, Settings], int], save: bool = True) -> int:
    settings = _settings(args)
    world = load_state(settings.state_file, settings.admin)
    rc = action(world, settings)
    if save:
        save_state(settings.state_file, world)
    return rc


def _signer(name: str) -> SigningContext:
    _, cap = user_account(name)
    return cap.sign()


def cmd_fund(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        identity, _ = user_account(args.name)
        world.ledger.mint(identity.address, args.amount)
        print(f"Funded {args.name} ({identity.address}) with {to_tokens(args.amount)}")
        return 0

    return _run(args, action)


def cmd_create(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        lottery_id = world.registry.create_lottery(_signer(args.by or settings.admin))
        print(f"Created lottery {lottery_id}")
        return 0

    return _run(args, action)


def cmd_bet(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        world.registry.place_bet(_signer(args.name), args.lottery_id, args.amount)
        lottery = world.registry.lookup(args.lottery_id)
        print(f"{args.name} deposited {to_tokens(args.amount)} into lottery {args.lottery_id}")
        print(f"Pot           : {to_tokens(lottery.total_amount)}")
        return 0

    return _run(args, action)


def cmd_accrue(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        bps = settings.yield_bps if args.bps is None else args.bps
        net = world.venue.accrue(bps)
        print(f"Venue accrued {bps} bps (net {to_tokens(net)})")
        return 0

    return _run(args, action)


def cmd_draw(args: argparse.Namespace) -> int:
    log = logging.getLogger("draw")

    def action(world: World, settings: Settings) -> int:
        if args.ticket is not None:
            randomness = FixedRandomness([args.ticket])
        elif args.block_feed_file:
            randomness = BlockhashRandomness.from_block_feed_file(args.block_feed_file, slot=args.slot)
        elif args.slot is not None:
            randomness = BlockhashRandomness.from_rpc(
                settings.require_rpc_url(), args.slot, timeout_s=args.timeout
            )
        else:
            randomness = SystemRandomness()
        log.info("Randomness      : %s", type(randomness).__name__)
        world.use_randomness(randomness)

        winner = world.registry.draw_winner(_signer(args.name), args.lottery_id)
        lottery = world.registry.lookup(args.lottery_id)

        print("========================================")
        print(f"LOTTERY {lottery.lottery_id} DRAW")
        print("========================================")
        print(f"Total tickets : {lottery.total_amount}")
        print(f"Winning ticket: {lottery.winning_ticket}")
        print(f"Winner        : {winner}")
        print(f"Payout        : {to_tokens(lottery.payout_amount)}")
        print(f"Yield earned  : {to_tokens(lottery.yield_earned)}")

        if args.out:
            with open(args.out, "w", encoding="utf-8") as f:
                json.dump(audit_record(lottery), f, indent=2)
            print(f"Wrote audit   : {args.out}")
        return 0

    return _run(args, action)


def cmd_claim_yield(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        amount = world.registry.claim_yield(_signer(args.by or settings.admin), args.lottery_id)
        print(f"Claimed yield {to_tokens(amount)} from lottery {args.lottery_id}")
        return 0

    return _run(args, action)


def cmd_show(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        ids = [args.lottery_id] if args.lottery_id is not None else world.registry.lottery_ids()
        print(json.dumps([world.registry.summary(i) for i in ids], indent=2))
        return 0

    return _run(args, action, save=False)


def cmd_balance(args: argparse.Namespace) -> int:
    def action(world: World, settings: Settings) -> int:
        identity, _ = user_account(args.name)
        balance = world.ledger.balance_of(identity.address)
        print(f"{args.name} ({identity.address}): {to_tokens(balance)}")
        return 0

    return _run(args, action, save=False)


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("AUDIT VERIFIED")
    print(f"Lottery       : {result['lottery_id']}")
    print(f"Winner        : {result['winner']}")
    print(f"Winning Ticket: {result['winning_ticket']}")
    print(f"Total Tickets : {result['total_tickets']}")
    print(f"Seed checked  : {'yes' if result['seed_checked'] else 'no (not blockhash-seeded)'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="yield-lottery",
        description="Custodial, deposit-weighted lottery with escrowed yield.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--state", default=None, help="State file (else LOTTERY_STATE_FILE).")
    p.add_argument("--admin", default=None, help="Administrator name (else LOTTERY_ADMIN).")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    f = sub.add_parser("fund", help="Mint funds to a named account.")
    f.add_argument("name")
    f.add_argument("amount", type=int, help="Amount in base units.")
    f.set_defaults(func=cmd_fund)

    c = sub.add_parser("create", help="Open a new lottery.")
    c.add_argument("--by", default=None, help="Caller name (default: administrator).")
    c.set_defaults(func=cmd_create)

    b = sub.add_parser("bet", help="Deposit into an open lottery.")
    b.add_argument("name")
    b.add_argument("lottery_id", type=int)
    b.add_argument("amount", type=int, help="Amount in base units.")
    b.set_defaults(func=cmd_bet)

    a = sub.add_parser("accrue", help="Apply yield (or loss) to every venue position.")
    a.add_argument("--bps", type=int, default=None, help="Basis points (else LOTTERY_YIELD_BPS).")
    a.set_defaults(func=cmd_accrue)

    d = sub.add_parser("draw", help="Draw the winner and pay out the pot.")
    d.add_argument("name", help="Caller name; anyone may draw.")
    d.add_argument("lottery_id", type=int)
    d.add_argument("--slot", type=int, default=None, help="Finalized slot whose blockhash seeds the draw.")
    d.add_argument(
        "--block-feed-file",
        default=None,
        help="Read the seed blockhash from a file (raw string or JSON).",
    )
    d.add_argument("--ticket", type=int, default=None, help="Force the winning ticket.")
    d.add_argument("--out", default=None, help="Write an audit JSON to this path.")
    d.set_defaults(func=cmd_draw)

    y = sub.add_parser("claim-yield", help="Administrator claims the yield of a drawn lottery.")
    y.add_argument("lottery_id", type=int)
    y.add_argument("--by", default=None, help="Caller name (default: administrator).")
    y.set_defaults(func=cmd_claim_yield)

    s = sub.add_parser("show", help="Print lottery state as JSON.")
    s.add_argument("lottery_id", type=int, nargs="?", default=None)
    s.set_defaults(func=cmd_show)

    bal = sub.add_parser("balance", help="Print a named account's balance.")
    bal.add_argument("name")
    bal.set_defaults(func=cmd_balance)

    v = sub.add_parser("verify", help="Verify an audit JSON deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit.json.")
    v.set_defaults(func=cmd_verify)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        rc = args.func(args)
    except LotteryError as e:
        print(f"error: {e.code}: {e}", file=sys.stderr)
        rc = 1
    raise SystemExit(rc)
