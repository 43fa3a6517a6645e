"""Vestledger — Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from vestledger.vesting.schema import DEFAULT_TRANCHE_CONFIG, TrancheConfig


class VestingSettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "VESTLEDGER_",
        "extra": "ignore",
    }

    # ── Storage ────────────────────────────────────────────────
    database_url: str = "sqlite:///vestledger.db"
    ledger_id: str = "default"

    # ── Token ──────────────────────────────────────────────────
    token_symbol: str = "TBT"
    token_decimals: int = 18
    total_vesting_pool: int = 100_000_000 * 10**18

    # ── Schedule ───────────────────────────────────────────────
    # Parsed from JSON, e.g. '[{"percentage": 50, "duration": 86400}, ...]'
    tranches: list[TrancheConfig] = list(DEFAULT_TRANCHE_CONFIG)

    # ── Accounts ───────────────────────────────────────────────
    ledger_account: str = "vesting-ledger"
    owner_account: str = "owner"

    # ── Dashboard ──────────────────────────────────────────────
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 8000

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def token_unit(self) -> int:
        return 10**self.token_decimals


settings = VestingSettings()
