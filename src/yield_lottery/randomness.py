from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Dict, Iterable, Iterator, Optional, Protocol

import httpx

from .draw import compute_ticket

log = logging.getLogger(__name__)


class RandomnessSource(Protocol):
    def uniform_range(self, low: int, high: int) -> int: ...

    def describe(self) -> Dict[str, Any]: ...


def _check_range(low: int, high: int) -> None:
    if high <= low:
        raise ValueError(f"Empty range [{low}, {high})")


class SystemRandomness:
    """OS-backed CSPRNG."""

    def uniform_range(self, low: int, high: int) -> int:
        _check_range(low, high)
        return low + secrets.randbelow(high - low)

    def describe(self) -> Dict[str, Any]:
        return {"source": "system"}


class FixedRandomness:
    """Replays preset values in order. Intended for tests and re-runs."""

    def __init__(self, values: Iterable[int]) -> None:
        self._values: Iterator[int] = iter(values)
        self.last: Optional[int] = None

    def uniform_range(self, low: int, high: int) -> int:
        _check_range(low, high)
        try:
            value = next(self._values)
        except StopIteration:
            raise RuntimeError("FixedRandomness ran out of values")
        if not low <= value < high:
            raise ValueError(f"Forced value {value} outside [{low}, {high})")
        self.last = value
        return value

    def describe(self) -> Dict[str, Any]:
        return {"source": "fixed", "value": self.last}


class BlockhashRandomness:
    """
    Publicly verifiable draw: SHA-256 of a finalized blockhash, reduced modulo
    the range size. Anyone holding the blockhash can recompute the ticket.
    """

    def __init__(self, blockhash: str, slot: Optional[int] = None, origin: str = "") -> None:
        self.blockhash = blockhash
        self.slot = slot
        self.origin = origin
        self._seed_hash_hex: Optional[str] = None

    @classmethod
    def from_rpc(cls, rpc_url: str, slot: int, timeout_s: float = 60.0) -> "BlockhashRandomness":
        return cls(fetch_blockhash(rpc_url, slot, timeout_s), slot=slot, origin="rpc:getBlock")

    @classmethod
    def from_block_feed_file(cls, path: str, slot: Optional[int] = None) -> "BlockhashRandomness":
        return cls(read_block_feed(path, slot), slot=slot, origin=f"file:{path}")

    def uniform_range(self, low: int, high: int) -> int:
        _check_range(low, high)
        ticket, self._seed_hash_hex, _ = compute_ticket(self.blockhash, high - low)
        return low + ticket

    def describe(self) -> Dict[str, Any]:
        return {
            "source": "blockhash",
            "origin": self.origin,
            "slot": self.slot,
            "seed_blockhash": self.blockhash,
            "seed_hash_hex": self._seed_hash_hex,
        }


def fetch_blockhash(
    rpc_url: str,
    slot: int,
    timeout_s: float = 60.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "getBlock",
        "params": [
            slot,
            {"encoding": "json", "transactionDetails": "none", "rewards": False},
        ],
    }
    with httpx.Client(timeout=timeout_s, transport=transport) as client:
        resp = client.post(rpc_url, json=payload)
        resp.raise_for_status()
        data = resp.json()

    if "error" in data:
        raise RuntimeError(f"RPC error: {data['error']}")
    result = data.get("result") or {}
    blockhash = result.get("blockhash")
    if not isinstance(blockhash, str):
        raise RuntimeError(f"Slot {slot}: getBlock returned no blockhash.")
    log.info("Fetched blockhash for slot %d", slot)
    return blockhash


def read_block_feed(path: str, slot: Optional[int] = None) -> str:
    """
    Read a blockhash from a file holding either the bare blockhash or JSON of
    the form {"blockhash": ...}, {"result": {"blockhash": ...}} or
    {"blocks": {"<slot>": {"blockhash": ...}}}.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read().strip()

    if not raw:
        raise RuntimeError(f"Block feed file {path} is empty")
    if not raw.startswith("{"):
        return raw

    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Block feed file is not valid JSON or raw string: {e}")
    if not isinstance(doc, dict):
        raise RuntimeError(f"Block feed file {path} must hold a JSON object")

    if isinstance(doc.get("blockhash"), str):
        if slot is not None and "slot" in doc and int(doc["slot"]) != slot:
            raise RuntimeError(
                f"Block feed slot mismatch: file slot={doc['slot']} vs expected slot={slot}"
            )
        return doc["blockhash"]

    result = doc.get("result")
    if isinstance(result, dict) and isinstance(result.get("blockhash"), str):
        return result["blockhash"]

    blocks = doc.get("blocks")
    if slot is not None and isinstance(blocks, dict):
        block = blocks.get(str(slot))
        if isinstance(block, dict) and isinstance(block.get("blockhash"), str):
            return block["blockhash"]

    raise RuntimeError(f"Could not find a blockhash in block feed file {path}")
