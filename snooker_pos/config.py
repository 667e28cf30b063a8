"""Runtime configuration defaults for tables, billing, persistence and printing."""

from __future__ import annotations

import os
from dataclasses import dataclass

from snooker_pos.errors import InvalidArgument

TABLE_COUNT = 4
BLOCK_RATE = 70
BLOCK_MINUTES = 15
TICK_SECONDS = 1.0

DB_PATH = "data/snooker.db"
LEDGER_KEY = "snooker_bills"
CURRENCY_SYMBOL = "₹"
DEBUG_LOG_PATH = "/tmp/snooker-pos-debug.log"

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
PRINTER_LEFT_INDENT_PX = 8

_ENV_PREFIX = "SNOOKER_POS_"


@dataclass(frozen=True)
class Settings:
    """Effective configuration after environment overrides."""

    table_count: int = TABLE_COUNT
    block_rate: int = BLOCK_RATE
    block_minutes: int = BLOCK_MINUTES
    tick_seconds: float = TICK_SECONDS
    db_path: str = DB_PATH
    ledger_key: str = LEDGER_KEY
    debug_log_path: str = DEBUG_LOG_PATH


def _positive_int(environ: dict[str, str], name: str, default: int) -> int:
    raw = environ.get(f"{_ENV_PREFIX}{name}", "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidArgument(f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise InvalidArgument(f"{_ENV_PREFIX}{name} must be at least 1, got {value}")
    return value


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from module defaults and SNOOKER_POS_* environment variables."""
    env = dict(os.environ if environ is None else environ)
    return Settings(
        table_count=_positive_int(env, "TABLE_COUNT", TABLE_COUNT),
        block_rate=_positive_int(env, "BLOCK_RATE", BLOCK_RATE),
        block_minutes=_positive_int(env, "BLOCK_MINUTES", BLOCK_MINUTES),
        db_path=env.get(f"{_ENV_PREFIX}DB_PATH", "").strip() or DB_PATH,
        debug_log_path=env.get(f"{_ENV_PREFIX}DEBUG_LOG", "").strip() or DEBUG_LOG_PATH,
    )
