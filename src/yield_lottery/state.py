"""
A complete in-process world (ledger, venue, registry) and its JSON form.

The command line loads the world from the state file, runs one operation and
writes it back, so consecutive invocations share balances and lotteries.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .escrow import user_account
from .events import RecordingEventSink
from .ledger import Ledger
from .lottery import Collaborators
from .project_constants import STATE_VERSION
from .randomness import RandomnessSource, SystemRandomness
from .registry import LotteryRegistry
from .venue import InMemoryYieldVenue

log = logging.getLogger(__name__)


@dataclass
class World:
    ledger: Ledger
    venue: InMemoryYieldVenue
    events: RecordingEventSink
    env: Collaborators
    registry: LotteryRegistry

    @classmethod
    def new(cls, admin_name: str, randomness: Optional[RandomnessSource] = None) -> "World":
        admin, _ = user_account(admin_name)
        return cls._assemble(Ledger(), {}, randomness, lambda env: LotteryRegistry(env, admin.address))

    @classmethod
    def _assemble(cls, ledger, positions, randomness, make_registry) -> "World":
        venue = InMemoryYieldVenue(ledger, positions=positions)
        events = RecordingEventSink()
        env = Collaborators(
            ledger=ledger,
            venue=venue,
            randomness=randomness or SystemRandomness(),
            events=events,
        )
        return cls(ledger=ledger, venue=venue, events=events, env=env, registry=make_registry(env))

    def use_randomness(self, randomness: RandomnessSource) -> None:
        self.env.randomness = randomness

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "balances": self.ledger.balances(),
            "venue_positions": self.venue.positions(),
            "registry": self.registry.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], randomness: Optional[RandomnessSource] = None) -> "World":
        version = data.get("version")
        if version != STATE_VERSION:
            raise RuntimeError(f"Unsupported state version {version!r} (expected {STATE_VERSION})")
        ledger = Ledger({a: int(b) for a, b in data["balances"].items()})
        positions = {a: int(p) for a, p in data["venue_positions"].items()}
        return cls._assemble(
            ledger,
            positions,
            randomness,
            lambda env: LotteryRegistry.from_dict(data["registry"], env),
        )


def save_state(path: str, world: World) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(target.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(world.to_dict(), f, indent=2, sort_keys=True)
    os.replace(tmp, target)
    log.debug("Saved state to %s", target)


def load_state(path: str, admin_name: str) -> World:
    """Load the world at `path`, or start a fresh one if the file is missing."""
    if not Path(path).exists():
        log.info("No state at %s; starting a new world", path)
        return World.new(admin_name)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return World.from_dict(data)
