import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPVAULT_DATA_DIR", Path.home() / ".local" / "share" / "clipvault"))
DB_PATH = DATA_DIR / "clipvault.db"
LOG_PATH = DATA_DIR / "clipvault.log"

STORE_QUOTA_BYTES = 5_000_000  # ~5MB, mirrors browser local storage
NEAR_FULL_RATIO = 0.8  # warn once usage crosses this share of the quota
PREVIEW_LENGTH = 60  # characters shown per clip in listings
FORMAT_VERSION = 1  # export document version
DEFAULT_WORKSPACE_ID = "default"
MERGED_SOURCE = "merged"


def _parse_max_history() -> int:
    raw = os.environ.get("CLIPVAULT_MAX_HISTORY")
    if raw is None:
        return 100
    try:
        value = int(raw)
    except ValueError:
        return 100
    return max(1, min(10_000, value))


DEFAULT_MAX_HISTORY_SIZE = _parse_max_history()
