from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from clipvault.config import DEFAULT_MAX_HISTORY_SIZE, DEFAULT_WORKSPACE_ID, PREVIEW_LENGTH
from clipvault.redact import mask_text
from clipvault.utils import format_timestamp, parse_timestamp, truncate_text


class ContentType(str, Enum):
    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"
    CODE = "code"
    IMAGE = "image"
    RICHTEXT = "richtext"


# Types whose content can be edited in place and joined by a merge
EDITABLE_TYPES = frozenset({
    ContentType.TEXT, ContentType.URL, ContentType.EMAIL, ContentType.PHONE, ContentType.CODE,
})


@dataclass(frozen=True)
class ClipSource:
    hostname: str = "unknown"
    url: str | None = None
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"hostname": self.hostname}
        if self.url is not None:
            data["url"] = self.url
        if self.title is not None:
            data["title"] = self.title
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str | None) -> "ClipSource":
        # Early captures stored the source as a bare string
        if data is None:
            return cls()
        if isinstance(data, str):
            return cls(hostname=data or "unknown")
        if not isinstance(data, dict):
            raise TypeError(f"invalid clip source: {data!r}")
        return cls(
            hostname=str(data.get("hostname") or "unknown"),
            url=data.get("url"),
            title=data.get("title"),
        )


@dataclass(frozen=True)
class Clip:
    id: str
    content: str
    type: ContentType
    timestamp: datetime
    source: ClipSource = field(default_factory=ClipSource)
    pinned: bool = False
    category: str | None = None
    workspace: str | None = None
    note: str | None = None
    copy_count: int = 0
    is_sensitive: bool = False
    html: str | None = None
    mime_type: str | None = None
    edited_at: datetime | None = None

    @property
    def is_image(self) -> bool:
        return self.type == ContentType.IMAGE

    def preview(self, length: int = PREVIEW_LENGTH) -> str:
        """Single-line preview with secrets masked."""
        if self.is_image:
            return f"[Image: {self.mime_type}]" if self.mime_type else "[Image]"
        text = mask_text(self.content) if self.is_sensitive else self.content
        return truncate_text(text, length)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "type": self.type.value,
            "timestamp": format_timestamp(self.timestamp),
            "source": self.source.to_dict(),
            "pinned": self.pinned,
            "category": self.category,
            "workspace": self.workspace,
            "note": self.note,
            "copyCount": self.copy_count,
            "isSensitive": self.is_sensitive,
        }
        if self.html is not None:
            data["html"] = self.html
        if self.mime_type is not None:
            data["mimeType"] = self.mime_type
        if self.edited_at is not None:
            data["editedAt"] = format_timestamp(self.edited_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Clip":
        content = data["content"]
        if not isinstance(content, str):
            raise ValueError("clip content must be a string")
        timestamp = parse_timestamp(data.get("timestamp")) or datetime.now()
        return cls(
            id=str(data["id"]),
            content=content,
            type=ContentType(data.get("type") or ContentType.TEXT.value),
            timestamp=timestamp,
            source=ClipSource.from_dict(data.get("source")),
            pinned=bool(data.get("pinned", False)),
            category=data.get("category") or None,
            workspace=data.get("workspace") or None,
            note=data.get("note") or None,
            copy_count=max(0, int(data.get("copyCount", 0))),
            is_sensitive=bool(data.get("isSensitive", False)),
            html=data.get("html"),
            mime_type=data.get("mimeType"),
            edited_at=parse_timestamp(data.get("editedAt")),
        )


@dataclass(frozen=True)
class ClipData:
    """A save request as sent by a capture caller."""

    content: str | None
    type: ContentType | None = None
    source: ClipSource = field(default_factory=ClipSource)
    html: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClipData":
        content = data.get("content")
        if content is not None and not isinstance(content, str):
            raise ValueError("clip content must be a string")
        raw_type = data.get("type")
        return cls(
            content=content,
            type=ContentType(raw_type) if raw_type else None,
            source=ClipSource.from_dict(data.get("source")),
            html=data.get("html"),
            mime_type=data.get("mimeType"),
        )


@dataclass(frozen=True)
class Settings:
    max_history_size: int = DEFAULT_MAX_HISTORY_SIZE
    auto_delete_days: int = 0
    excluded_sites: frozenset[str] = frozenset()
    detect_sensitive: bool = True
    show_notifications: bool = True
    theme: str = "system"
    auto_paste: bool = False
    default_workspace: str = DEFAULT_WORKSPACE_ID

    def normalized(self) -> "Settings":
        """Clamp numeric limits and tidy the excluded host list."""
        sites = frozenset(s.strip().lower() for s in self.excluded_sites if s and s.strip())
        return replace(
            self,
            max_history_size=max(1, int(self.max_history_size)),
            auto_delete_days=max(0, int(self.auto_delete_days)),
            excluded_sites=sites,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxHistorySize": self.max_history_size,
            "autoDeleteDays": self.auto_delete_days,
            "excludedSites": sorted(self.excluded_sites),
            "detectSensitive": self.detect_sensitive,
            "showNotifications": self.show_notifications,
            "theme": self.theme,
            "autoPaste": self.auto_paste,
            "defaultWorkspace": self.default_workspace,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Settings":
        data = data or {}
        defaults = cls()
        return cls(
            max_history_size=data.get("maxHistorySize", defaults.max_history_size),
            auto_delete_days=data.get("autoDeleteDays", defaults.auto_delete_days),
            excluded_sites=frozenset(data.get("excludedSites") or ()),
            detect_sensitive=data.get("detectSensitive", defaults.detect_sensitive),
            show_notifications=data.get("showNotifications", defaults.show_notifications),
            theme=data.get("theme", defaults.theme),
            auto_paste=data.get("autoPaste", defaults.auto_paste),
            default_workspace=data.get("defaultWorkspace", defaults.default_workspace),
        ).normalized()


@dataclass(frozen=True)
class Stats:
    total_clips_saved: int = 0
    total_copies_from_history: int = 0
    total_images_saved: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalClipsSaved": self.total_clips_saved,
            "totalCopiesFromHistory": self.total_copies_from_history,
            "totalImagesSaved": self.total_images_saved,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Stats":
        data = data or {}
        return cls(
            total_clips_saved=int(data.get("totalClipsSaved", 0)),
            total_copies_from_history=int(data.get("totalCopiesFromHistory", 0)),
            total_images_saved=int(data.get("totalImagesSaved", 0)),
        )


@dataclass(frozen=True)
class Workspace:
    id: str
    name: str
    icon: str = "📁"
    color: str = "#6366f1"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "icon": self.icon, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workspace":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            icon=data.get("icon") or "📁",
            color=data.get("color") or "#6366f1",
        )


DEFAULT_WORKSPACE = Workspace(id=DEFAULT_WORKSPACE_ID, name="Default", icon="📋", color="#6366f1")


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Template":
        content = data["content"]
        if not isinstance(content, str):
            raise ValueError("template content must be a string")
        return cls(id=str(data["id"]), name=str(data.get("name") or ""), content=content)


@dataclass(frozen=True)
class HistoryFilter:
    """Query filters; unset fields do not constrain the result."""

    workspace: str | None = None
    type: ContentType | None = None
    category: str | None = None
    pinned: bool | None = None
    source: str | None = None
    search: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def matches(self, clip: Clip) -> bool:
        if self.workspace and self.workspace != "all":
            # Clips without a workspace belong everywhere
            if clip.workspace and clip.workspace != self.workspace:
                return False
        if self.type is not None and clip.type != self.type:
            return False
        if self.category is not None and clip.category != self.category:
            return False
        if self.pinned and not clip.pinned:
            return False
        if self.source is not None and clip.source.hostname != self.source:
            return False
        if self.search:
            if clip.is_image or self.search.lower() not in clip.content.lower():
                return False
        if self.start_date is not None and clip.timestamp < parse_timestamp(self.start_date):
            return False
        if self.end_date is not None and clip.timestamp > parse_timestamp(self.end_date):
            return False
        return True


@dataclass(frozen=True)
class SaveResult:
    clip: Clip | None = None
    duplicate: bool = False
    excluded: bool = False

    def to_dict(self) -> dict[str, Any]:
        if self.excluded:
            return {"excluded": True}
        data: dict[str, Any] = {"clip": self.clip.to_dict() if self.clip else None}
        if self.duplicate:
            data["duplicate"] = True
        return data
