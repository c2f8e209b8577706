from __future__ import annotations

import os
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    frontend_url: str = "http://localhost:5173"
    request_fee: Decimal = Decimal("10.00")
    fee_currency: str = "INR"
    approval_lock_ttl_seconds: int = 30

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    fee_raw = _getenv("REQUEST_FEE", "10.00")
    lock_ttl_raw = _getenv("APPROVAL_LOCK_TTL_SECONDS", "30")
    currency_raw = _getenv("FEE_CURRENCY", "INR").upper()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0"):
        raise ValueError(f"LOG_JSON must be true|false (got {log_json_raw!r})")

    port = _parse_int("PORT", port_raw)

    try:
        request_fee = Decimal(fee_raw)
    except InvalidOperation:
        raise ValueError(f"REQUEST_FEE must be a decimal (got {fee_raw!r})") from None
    if request_fee < 0:
        raise ValueError(f"REQUEST_FEE must be non-negative (got {fee_raw!r})")

    if not re.fullmatch(r"[A-Z]{3}", currency_raw):
        raise ValueError(
            f"FEE_CURRENCY must be a 3-letter currency code (got {currency_raw!r})"
        )

    lock_ttl = _parse_int("APPROVAL_LOCK_TTL_SECONDS", lock_ttl_raw)
    if lock_ttl <= 0:
        raise ValueError(
            f"APPROVAL_LOCK_TTL_SECONDS must be positive (got {lock_ttl_raw!r})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        frontend_url=_getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        request_fee=request_fee,
        fee_currency=currency_raw,
        approval_lock_ttl_seconds=lock_ttl,
    )


SETTINGS = load_settings()
