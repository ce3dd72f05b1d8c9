"""The clip history engine.

One engine owns one store. Mutations are serialized through a FIFO lock and
each one is a single read-modify-write: the new state is computed in memory,
written with one ``store.set`` covering every key it touches, and only then
becomes visible to readers. A failed write leaves the previous state in
place. Reads never take the lock; they see the last committed state.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from clipvault import templates as template_ops
from clipvault import workspaces as workspace_ops
from clipvault.classify import classify
from clipvault.config import DEFAULT_WORKSPACE_ID, MERGED_SOURCE
from clipvault.errors import (
    EmptyContentError,
    InsufficientClipsError,
    NotFoundError,
    InvalidRequestError,
    UnsupportedClipError,
)
from clipvault.models import (
    DEFAULT_WORKSPACE,
    EDITABLE_TYPES,
    Clip,
    ClipData,
    ClipSource,
    ContentType,
    HistoryFilter,
    SaveResult,
    Settings,
    Stats,
    Template,
    Workspace,
)
from clipvault.storage import StorageManager, StorageUsage
from clipvault.transfer import build_export, parse_import
from clipvault.utils import generate_id

logger = logging.getLogger(__name__)

# State field -> persisted key
STORE_KEYS = {
    "history": "history",
    "settings": "settings",
    "stats": "stats",
    "templates": "templates",
    "workspaces": "workspaces",
    "active_workspace": "activeWorkspace",
}


@dataclass(frozen=True)
class EngineState:
    """Last committed state. Lists are replaced, never mutated in place."""

    history: list[Clip]
    settings: Settings
    stats: Stats
    templates: list[Template]
    workspaces: list[Workspace]
    active_workspace: str

    def serialize(self, fields: list[str]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in fields:
            value = getattr(self, name)
            if isinstance(value, list):
                out[STORE_KEYS[name]] = [item.to_dict() for item in value]
            elif hasattr(value, "to_dict"):
                out[STORE_KEYS[name]] = value.to_dict()
            else:
                out[STORE_KEYS[name]] = value
        return out

    @classmethod
    def load(cls, raw: dict[str, Any]) -> "EngineState":
        """Build state from stored values, filling anything missing with defaults."""
        workspaces = workspace_ops.ensure_default(
            [Workspace.from_dict(ws) for ws in raw.get("workspaces") or []]
        )
        active = raw.get("activeWorkspace") or DEFAULT_WORKSPACE_ID
        if not any(ws.id == active for ws in workspaces):
            active = DEFAULT_WORKSPACE_ID
        return cls(
            history=[Clip.from_dict(c) for c in raw.get("history") or []],
            settings=Settings.from_dict(raw.get("settings")),
            stats=Stats.from_dict(raw.get("stats")),
            templates=[Template.from_dict(t) for t in raw.get("templates") or []],
            workspaces=workspaces,
            active_workspace=active,
        )


def evict_by_size(history: list[Clip], max_size: int) -> list[Clip]:
    """Keep every pinned clip and the newest max_size unpinned ones, in order."""
    kept: list[Clip] = []
    unpinned = 0
    for clip in history:
        if clip.pinned:
            kept.append(clip)
        elif unpinned < max_size:
            kept.append(clip)
            unpinned += 1
    return kept


def evict_expired(history: list[Clip], days: int, now: datetime) -> list[Clip]:
    if days <= 0:
        return list(history)
    cutoff = now - timedelta(days=days)
    return [clip for clip in history if clip.pinned or clip.timestamp >= cutoff]


def apply_eviction(history: list[Clip], settings: Settings, now: datetime) -> list[Clip]:
    kept = evict_by_size(history, settings.max_history_size)
    return evict_expired(kept, settings.auto_delete_days, now)


def _index_of(history: list[Clip], clip_id: str) -> int:
    for index, clip in enumerate(history):
        if clip.id == clip_id:
            return index
    raise NotFoundError(clip_id)


class HistoryEngine:
    def __init__(self, store: StorageManager, state: EngineState):
        self._store = store
        self._state = state
        self._queue = asyncio.Lock()

    @classmethod
    async def open(cls, store: StorageManager) -> "HistoryEngine":
        """Load state from store, seeding defaults on first run."""
        raw = await store.get(STORE_KEYS.values())
        state = EngineState.load(raw)
        missing = [name for name, key in STORE_KEYS.items() if key not in raw]
        if missing:
            await store.set(state.serialize(missing))
            logger.info("Initialized defaults for %s", ", ".join(missing))
        logger.info("History engine ready with %d clips", len(state.history))
        return cls(store, state)

    @property
    def state(self) -> EngineState:
        return self._state

    async def _commit(self, **changes: Any) -> EngineState:
        new_state = replace(self._state, **changes)
        await self._store.set(new_state.serialize(list(changes)))
        self._state = new_state
        return new_state

    # -- save ---------------------------------------------------------------

    async def save(self, data: ClipData | dict[str, Any]) -> SaveResult:
        if isinstance(data, dict):
            try:
                data = ClipData.from_dict(data)
            except (TypeError, ValueError) as exc:
                raise InvalidRequestError(f"invalid clip data: {exc}") from exc
        async with self._queue:
            return await self._save_locked(data)

    async def _save_locked(self, data: ClipData) -> SaveResult:
        if data.content is None or not data.content.strip():
            raise EmptyContentError("clip content is empty")

        state = self._state
        settings = state.settings
        if data.source.hostname.lower() in settings.excluded_sites:
            logger.debug("Skipping clip from excluded site %s", data.source.hostname)
            return SaveResult(excluded=True)

        now = datetime.now()
        is_image = data.type == ContentType.IMAGE

        if not is_image:
            for index, existing in enumerate(state.history):
                if existing.content == data.content:
                    promoted = replace(existing, timestamp=now, source=data.source)
                    history = [promoted, *state.history[:index], *state.history[index + 1:]]
                    await self._commit(history=history)
                    logger.debug("Promoted duplicate clip %s", promoted.id)
                    return SaveResult(clip=promoted, duplicate=True)

        classification = classify(data.content)
        clip_type = data.type or classification.type
        sensitive = settings.detect_sensitive and not is_image and classification.is_sensitive
        clip = Clip(
            id=generate_id(),
            content=data.content,
            type=clip_type,
            timestamp=now,
            source=data.source,
            workspace=state.active_workspace,
            is_sensitive=sensitive,
            html=data.html,
            mime_type=data.mime_type,
        )
        stats = replace(
            state.stats,
            total_clips_saved=state.stats.total_clips_saved + 1,
            total_images_saved=state.stats.total_images_saved + int(is_image),
        )

        candidate = [clip, *state.history]
        history = apply_eviction(candidate, settings, now)
        evicted = len(candidate) - len(history)
        await self._commit(history=history, stats=stats)
        if evicted:
            logger.info("Evicted %d clips", evicted)
        return SaveResult(clip=clip)

    # -- queries ------------------------------------------------------------

    def get_history(self, filters: HistoryFilter | None = None) -> list[Clip]:
        filters = filters or HistoryFilter()
        return [clip for clip in self._state.history if filters.matches(clip)]

    def get_clip(self, clip_id: str) -> Clip:
        history = self._state.history
        return history[_index_of(history, clip_id)]

    def get_categories(self) -> list[str]:
        return sorted({clip.category for clip in self._state.history if clip.category})

    def get_settings(self) -> Settings:
        return self._state.settings

    def get_stats(self) -> Stats:
        return self._state.stats

    def get_workspaces(self) -> list[Workspace]:
        return list(self._state.workspaces)

    def get_active_workspace(self) -> str:
        return self._state.active_workspace

    def get_templates(self) -> list[Template]:
        return list(self._state.templates)

    async def storage_usage(self) -> StorageUsage:
        return await self._store.usage()

    # -- clip mutations -----------------------------------------------------

    async def _update_clip(self, clip_id: str, transform: Callable[[Clip], Clip]) -> Clip:
        async with self._queue:
            history = self._state.history
            index = _index_of(history, clip_id)
            updated = transform(history[index])
            await self._commit(history=[*history[:index], updated, *history[index + 1:]])
            return updated

    async def toggle_pin(self, clip_id: str) -> bool:
        clip = await self._update_clip(clip_id, lambda c: replace(c, pinned=not c.pinned))
        return clip.pinned

    async def edit_clip(self, clip_id: str, content: str) -> Clip:
        """Replace a text clip's content.

        The clip keeps its original type and sensitivity flag; classification
        only runs when a clip is first saved.
        """
        if not content or not content.strip():
            raise EmptyContentError("clip content is empty")

        def edit(clip: Clip) -> Clip:
            if clip.type not in EDITABLE_TYPES:
                raise UnsupportedClipError(f"{clip.type.value} clips cannot be edited")
            return replace(clip, content=content, edited_at=datetime.now())

        return await self._update_clip(clip_id, edit)

    async def set_note(self, clip_id: str, note: str | None) -> Clip:
        return await self._update_clip(clip_id, lambda c: replace(c, note=note or None))

    async def set_category(self, clip_id: str, category: str | None) -> Clip:
        return await self._update_clip(clip_id, lambda c: replace(c, category=category or None))

    async def set_workspace(self, clip_id: str, workspace: str | None) -> Clip:
        return await self._update_clip(clip_id, lambda c: replace(c, workspace=workspace or None))

    async def increment_copy_count(self, clip_id: str) -> Clip:
        async with self._queue:
            state = self._state
            index = _index_of(state.history, clip_id)
            clip = state.history[index]
            updated = replace(clip, copy_count=clip.copy_count + 1)
            stats = replace(state.stats, total_copies_from_history=state.stats.total_copies_from_history + 1)
            await self._commit(
                history=[*state.history[:index], updated, *state.history[index + 1:]],
                stats=stats,
            )
            return updated

    async def merge_clips(self, clip_ids: list[str], separator: str = "\n") -> SaveResult:
        """Join clips in the given order and save the result as a new clip."""
        async with self._queue:
            by_id = {clip.id: clip for clip in self._state.history}
            parts = [
                by_id[clip_id].content
                for clip_id in dict.fromkeys(clip_ids)
                if clip_id in by_id and not by_id[clip_id].is_image
            ]
            if len(parts) < 2:
                raise InsufficientClipsError("merging needs at least two text clips")
            data = ClipData(content=separator.join(parts), source=ClipSource(hostname=MERGED_SOURCE))
            return await self._save_locked(data)

    async def delete_clip(self, clip_id: str) -> None:
        async with self._queue:
            history = self._state.history
            index = _index_of(history, clip_id)
            await self._commit(history=[*history[:index], *history[index + 1:]])

    async def clear_history(self) -> int:
        async with self._queue:
            count = len(self._state.history)
            await self._commit(history=[])
            logger.info("Cleared %d clips", count)
            return count

    # -- settings -----------------------------------------------------------

    async def save_settings(self, settings: Settings | dict[str, Any]) -> Settings:
        """Replace settings; a dict is applied on top of the current values."""
        async with self._queue:
            try:
                if isinstance(settings, dict):
                    settings = Settings.from_dict({**self._state.settings.to_dict(), **settings})
                settings = settings.normalized()
            except (TypeError, ValueError) as exc:
                raise InvalidRequestError(f"invalid settings: {exc}") from exc
            state = await self._commit(settings=settings)
            return state.settings

    # -- workspaces ---------------------------------------------------------

    async def set_active_workspace(self, workspace_id: str) -> None:
        async with self._queue:
            workspace_ops.find_workspace(self._state.workspaces, workspace_id)
            await self._commit(active_workspace=workspace_id)

    async def create_workspace(self, name: str, icon: str = "📁", color: str = "#6366f1") -> Workspace:
        async with self._queue:
            workspaces, workspace = workspace_ops.create_workspace(self._state.workspaces, name, icon, color)
            await self._commit(workspaces=workspaces)
            return workspace

    async def delete_workspace(self, workspace_id: str) -> None:
        async with self._queue:
            workspaces = workspace_ops.delete_workspace(self._state.workspaces, workspace_id)
            changes: dict[str, Any] = {"workspaces": workspaces}
            if self._state.active_workspace == workspace_id:
                changes["active_workspace"] = DEFAULT_WORKSPACE.id
            await self._commit(**changes)

    # -- templates ----------------------------------------------------------

    async def save_template(self, name: str, content: str, template_id: str | None = None) -> Template:
        async with self._queue:
            templates, template = template_ops.save_template(self._state.templates, name, content, template_id)
            await self._commit(templates=templates)
            return template

    async def delete_template(self, template_id: str) -> None:
        async with self._queue:
            templates = template_ops.delete_template(self._state.templates, template_id)
            await self._commit(templates=templates)

    # -- export / import ----------------------------------------------------

    def export_data(self) -> dict[str, Any]:
        state = self._state
        return build_export(state.history, state.settings, state.stats, state.templates, state.workspaces)

    async def import_data(self, document: Any) -> int:
        """Replace every section present in document; returns the clip count."""
        plan = parse_import(document)
        async with self._queue:
            changes: dict[str, Any] = {}
            for name in ("history", "settings", "stats", "templates", "workspaces"):
                value = getattr(plan, name)
                if value is not None:
                    changes[name] = value
            if plan.workspaces is not None:
                if not any(ws.id == self._state.active_workspace for ws in plan.workspaces):
                    changes["active_workspace"] = DEFAULT_WORKSPACE.id
            if changes:
                await self._commit(**changes)
            logger.info("Imported sections: %s", ", ".join(changes) or "none")
            return plan.imported_count
