"""Export document building and import validation.

An import replaces every section the document carries and leaves the others
alone. The whole document is parsed before anything is written, so a bad
document never leaves a half-applied import behind.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from clipvault.config import FORMAT_VERSION
from clipvault.errors import InvalidImportError
from clipvault.models import Clip, Settings, Stats, Template, Workspace
from clipvault.utils import default_export_name, format_timestamp, generate_id
from clipvault.workspaces import ensure_default

logger = logging.getLogger(__name__)


@dataclass
class ImportPlan:
    """Parsed sections of an import document; None means absent."""

    history: list[Clip] | None = None
    settings: Settings | None = None
    stats: Stats | None = None
    templates: list[Template] | None = None
    workspaces: list[Workspace] | None = None

    @property
    def imported_count(self) -> int:
        return len(self.history) if self.history is not None else 0


def build_export(
    history: list[Clip],
    settings: Settings,
    stats: Stats,
    templates: list[Template],
    workspaces: list[Workspace],
    exported_at: datetime | None = None,
) -> dict[str, Any]:
    return {
        "history": [clip.to_dict() for clip in history],
        "settings": settings.to_dict(),
        "stats": stats.to_dict(),
        "templates": [t.to_dict() for t in templates],
        "workspaces": [ws.to_dict() for ws in workspaces],
        "formatVersion": FORMAT_VERSION,
        "exportedAt": format_timestamp(exported_at or datetime.now()),
    }


def _require_list(doc: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = doc[key]
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise InvalidImportError(f"'{key}' must be a list of objects")
    return value


def _require_dict(doc: dict[str, Any], key: str) -> dict[str, Any]:
    value = doc[key]
    if not isinstance(value, dict):
        raise InvalidImportError(f"'{key}' must be an object")
    return value


def _parse_history(items: list[dict[str, Any]]) -> list[Clip]:
    clips: list[Clip] = []
    seen: set[str] = set()
    for position, item in enumerate(items):
        if not isinstance(item.get("content"), str):
            raise InvalidImportError(f"history[{position}] has no text content")
        if not item.get("id"):
            item = {**item, "id": generate_id()}
        try:
            clip = Clip.from_dict(item)
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidImportError(f"history[{position}] is malformed: {exc}") from exc
        if clip.id in seen:
            raise InvalidImportError(f"duplicate clip id {clip.id!r}")
        seen.add(clip.id)
        clips.append(clip)
    return clips


def parse_import(doc: Any) -> ImportPlan:
    """Validate an import document and parse the sections it contains."""
    if not isinstance(doc, dict):
        raise InvalidImportError("import document must be an object")

    version = doc.get("formatVersion", FORMAT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version > FORMAT_VERSION:
        raise InvalidImportError(f"unsupported formatVersion {version!r}")

    plan = ImportPlan()
    try:
        if "history" in doc:
            plan.history = _parse_history(_require_list(doc, "history"))
        if "settings" in doc:
            settings = _require_dict(doc, "settings")
            if not isinstance(settings.get("excludedSites", []), list):
                raise InvalidImportError("'settings.excludedSites' must be a list")
            plan.settings = Settings.from_dict(settings)
        if "stats" in doc:
            plan.stats = Stats.from_dict(_require_dict(doc, "stats"))
        if "templates" in doc:
            plan.templates = [Template.from_dict(t) for t in _require_list(doc, "templates")]
        if "workspaces" in doc:
            plan.workspaces = ensure_default(
                [Workspace.from_dict(ws) for ws in _require_list(doc, "workspaces")]
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidImportError(f"malformed import document: {exc}") from exc

    return plan


def write_export_file(document: dict[str, Any], path: str | Path | None = None) -> Path:
    target = Path(path) if path else Path.cwd() / default_export_name()
    target.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported %d clips to %s", len(document.get("history", [])), target)
    return target


def read_import_file(path: str | Path) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidImportError(f"cannot read {path}: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidImportError(f"{path} is not valid JSON: {exc}") from exc
