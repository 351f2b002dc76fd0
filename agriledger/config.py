# agriledger/config.py
import logging
import os
from dataclasses import dataclass
from pathlib import Path

# Resolve to the project root (one level up from agriledger/)
BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATABASE_URL = f"sqlite:///{(BASE_DIR / 'ledger.db').as_posix()}"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    owner: str = "owner"
    log_level: str = "INFO"
    max_string_length: int = 256
    # off: duplicate batch ids overwrite, unknown log ids edit a zero-valued record
    reject_duplicate_batches: bool = False
    reject_unknown_log_edits: bool = False


def _env_flag(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None or val == "":
        return default
    return val.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    val = os.environ.get(name, "")
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {val!r}") from None


def load_settings() -> Settings:
    """Read settings from AGRILEDGER_* environment variables."""
    return Settings(
        database_url=os.environ.get("AGRILEDGER_DATABASE_URL") or DEFAULT_DATABASE_URL,
        owner=os.environ.get("AGRILEDGER_OWNER") or "owner",
        log_level=(os.environ.get("AGRILEDGER_LOG_LEVEL") or "INFO").upper(),
        max_string_length=_env_int("AGRILEDGER_MAX_STRING_LENGTH", 256),
        reject_duplicate_batches=_env_flag("AGRILEDGER_REJECT_DUPLICATE_BATCHES", False),
        reject_unknown_log_edits=_env_flag("AGRILEDGER_REJECT_UNKNOWN_LOG_EDITS", False),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
