from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class Settings:
    admin: str
    state_file: str
    yield_bps: int
    rpc_url: str | None

    @staticmethod
    def from_env(
        admin_override: str | None = None,
        state_file_override: str | None = None,
        rpc_url_override: str | None = None,
    ) -> "Settings":
        load_dotenv(find_dotenv(usecwd=True))

        admin = admin_override or os.getenv("LOTTERY_ADMIN", "").strip() or "admin"
        state_file = (
            state_file_override
            or os.getenv("LOTTERY_STATE_FILE", "").strip()
            or "lottery_state.json"
        )

        raw_bps = os.getenv("LOTTERY_YIELD_BPS", "").strip() or "0"
        try:
            yield_bps = int(raw_bps)
        except ValueError:
            raise RuntimeError(f"LOTTERY_YIELD_BPS must be an integer, got {raw_bps!r}")

        # A missing RPC URL only matters once blockhash randomness is requested.
        rpc_url = rpc_url_override or os.getenv("RPC_URL", "").strip() or None

        return Settings(
            admin=admin,
            state_file=state_file,
            yield_bps=yield_bps,
            rpc_url=rpc_url,
        )

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise RuntimeError(
                "Missing RPC_URL. Put it in .env, export it or pass --rpc-url."
            )
        return self.rpc_url
