import secrets
import time
from datetime import date, datetime

from clipvault.config import DATA_DIR


def generate_id(prefix: str = "clip") -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def parse_timestamp(value: str | int | float | datetime | None) -> datetime | None:
    """Read a stored timestamp.

    ISO-8601 strings are the current format; numbers are treated as epoch
    milliseconds, which is how older exports stored them. Values with a UTC
    offset are converted to naive local time.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _to_local(value)
    if isinstance(value, bool):
        raise ValueError(f"invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000)
    if isinstance(value, str) and value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return _to_local(datetime.fromisoformat(value))


def _to_local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def default_export_name(today: date | None = None) -> str:
    today = today or date.today()
    return f"clipvault-backup-{today.isoformat()}.json"


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
