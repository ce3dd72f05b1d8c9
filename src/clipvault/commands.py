"""Command contract between callers and the history engine.

Each command is a small frozen dataclass. ``dispatch`` looks up the handler
registered for the command's class, runs it, and wraps the outcome in a
``Response``. Engine errors become ``Response(ok=False, error=<code>)``;
anything else propagates.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

from clipvault.engine import HistoryEngine
from clipvault.errors import ClipVaultError
from clipvault.models import ClipData, HistoryFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Save:
    data: ClipData | dict[str, Any]


@dataclass(frozen=True)
class Query:
    filters: HistoryFilter = field(default_factory=HistoryFilter)


@dataclass(frozen=True)
class Delete:
    id: str


@dataclass(frozen=True)
class ClearAll:
    pass


@dataclass(frozen=True)
class TogglePin:
    id: str


@dataclass(frozen=True)
class EditClip:
    id: str
    content: str


@dataclass(frozen=True)
class SetNote:
    id: str
    value: str | None


@dataclass(frozen=True)
class SetCategory:
    id: str
    value: str | None


@dataclass(frozen=True)
class SetWorkspace:
    id: str
    value: str | None


@dataclass(frozen=True)
class MergeClips:
    ids: tuple[str, ...]
    separator: str = "\n"


@dataclass(frozen=True)
class IncrementCopyCount:
    id: str


@dataclass(frozen=True)
class GetSettings:
    pass


@dataclass(frozen=True)
class SaveSettings:
    settings: dict[str, Any]


@dataclass(frozen=True)
class GetStats:
    pass


@dataclass(frozen=True)
class GetCategories:
    pass


@dataclass(frozen=True)
class GetWorkspaces:
    pass


@dataclass(frozen=True)
class SetActiveWorkspace:
    id: str


@dataclass(frozen=True)
class CreateWorkspace:
    name: str
    icon: str = "📁"
    color: str = "#6366f1"


@dataclass(frozen=True)
class DeleteWorkspace:
    id: str


@dataclass(frozen=True)
class GetTemplates:
    pass


@dataclass(frozen=True)
class SaveTemplate:
    name: str
    content: str
    id: str | None = None


@dataclass(frozen=True)
class DeleteTemplate:
    id: str


@dataclass(frozen=True)
class ExportData:
    pass


@dataclass(frozen=True)
class ImportData:
    document: Any


@dataclass(frozen=True)
class CheckStorage:
    pass


Command = Union[
    Save, Query, Delete, ClearAll, TogglePin, EditClip, SetNote, SetCategory, SetWorkspace,
    MergeClips, IncrementCopyCount, GetSettings, SaveSettings, GetStats, GetCategories,
    GetWorkspaces, SetActiveWorkspace, CreateWorkspace, DeleteWorkspace, GetTemplates,
    SaveTemplate, DeleteTemplate, ExportData, ImportData, CheckStorage,
]


@dataclass
class Response:
    ok: bool
    data: Any = None
    error: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error, "message": self.message}


Handler = Callable[[HistoryEngine, Any], Awaitable[Any]]
HANDLERS: dict[type, Handler] = {}


def handles(command_type: type) -> Callable[[Handler], Handler]:
    def register(func: Handler) -> Handler:
        HANDLERS[command_type] = func
        return func

    return register


@handles(Save)
async def _save(engine: HistoryEngine, cmd: Save) -> dict[str, Any]:
    result = await engine.save(cmd.data)
    return result.to_dict()


@handles(Query)
async def _query(engine: HistoryEngine, cmd: Query) -> list[dict[str, Any]]:
    return [clip.to_dict() for clip in engine.get_history(cmd.filters)]


@handles(Delete)
async def _delete(engine: HistoryEngine, cmd: Delete) -> None:
    await engine.delete_clip(cmd.id)


@handles(ClearAll)
async def _clear_all(engine: HistoryEngine, cmd: ClearAll) -> dict[str, int]:
    return {"removed": await engine.clear_history()}


@handles(TogglePin)
async def _toggle_pin(engine: HistoryEngine, cmd: TogglePin) -> dict[str, bool]:
    return {"pinned": await engine.toggle_pin(cmd.id)}


@handles(EditClip)
async def _edit_clip(engine: HistoryEngine, cmd: EditClip) -> dict[str, Any]:
    return (await engine.edit_clip(cmd.id, cmd.content)).to_dict()


@handles(SetNote)
async def _set_note(engine: HistoryEngine, cmd: SetNote) -> dict[str, Any]:
    return (await engine.set_note(cmd.id, cmd.value)).to_dict()


@handles(SetCategory)
async def _set_category(engine: HistoryEngine, cmd: SetCategory) -> dict[str, Any]:
    return (await engine.set_category(cmd.id, cmd.value)).to_dict()


@handles(SetWorkspace)
async def _set_workspace(engine: HistoryEngine, cmd: SetWorkspace) -> dict[str, Any]:
    return (await engine.set_workspace(cmd.id, cmd.value)).to_dict()


@handles(MergeClips)
async def _merge_clips(engine: HistoryEngine, cmd: MergeClips) -> dict[str, Any]:
    result = await engine.merge_clips(list(cmd.ids), cmd.separator)
    return result.to_dict()


@handles(IncrementCopyCount)
async def _increment_copy_count(engine: HistoryEngine, cmd: IncrementCopyCount) -> dict[str, int]:
    clip = await engine.increment_copy_count(cmd.id)
    return {"copyCount": clip.copy_count}


@handles(GetSettings)
async def _get_settings(engine: HistoryEngine, cmd: GetSettings) -> dict[str, Any]:
    return engine.get_settings().to_dict()


@handles(SaveSettings)
async def _save_settings(engine: HistoryEngine, cmd: SaveSettings) -> dict[str, Any]:
    return (await engine.save_settings(cmd.settings)).to_dict()


@handles(GetStats)
async def _get_stats(engine: HistoryEngine, cmd: GetStats) -> dict[str, int]:
    return engine.get_stats().to_dict()


@handles(GetCategories)
async def _get_categories(engine: HistoryEngine, cmd: GetCategories) -> list[str]:
    return engine.get_categories()


@handles(GetWorkspaces)
async def _get_workspaces(engine: HistoryEngine, cmd: GetWorkspaces) -> dict[str, Any]:
    return {
        "workspaces": [ws.to_dict() for ws in engine.get_workspaces()],
        "activeWorkspace": engine.get_active_workspace(),
    }


@handles(SetActiveWorkspace)
async def _set_active_workspace(engine: HistoryEngine, cmd: SetActiveWorkspace) -> None:
    await engine.set_active_workspace(cmd.id)


@handles(CreateWorkspace)
async def _create_workspace(engine: HistoryEngine, cmd: CreateWorkspace) -> dict[str, str]:
    return (await engine.create_workspace(cmd.name, cmd.icon, cmd.color)).to_dict()


@handles(DeleteWorkspace)
async def _delete_workspace(engine: HistoryEngine, cmd: DeleteWorkspace) -> None:
    await engine.delete_workspace(cmd.id)


@handles(GetTemplates)
async def _get_templates(engine: HistoryEngine, cmd: GetTemplates) -> list[dict[str, str]]:
    return [t.to_dict() for t in engine.get_templates()]


@handles(SaveTemplate)
async def _save_template(engine: HistoryEngine, cmd: SaveTemplate) -> dict[str, str]:
    return (await engine.save_template(cmd.name, cmd.content, cmd.id)).to_dict()


@handles(DeleteTemplate)
async def _delete_template(engine: HistoryEngine, cmd: DeleteTemplate) -> None:
    await engine.delete_template(cmd.id)


@handles(ExportData)
async def _export_data(engine: HistoryEngine, cmd: ExportData) -> dict[str, Any]:
    return engine.export_data()


@handles(ImportData)
async def _import_data(engine: HistoryEngine, cmd: ImportData) -> dict[str, int]:
    return {"importedCount": await engine.import_data(cmd.document)}


@handles(CheckStorage)
async def _check_storage(engine: HistoryEngine, cmd: CheckStorage) -> dict[str, Any]:
    return (await engine.storage_usage()).to_dict()


async def dispatch(engine: HistoryEngine, command: Command) -> Response:
    handler = HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"unknown command: {type(command).__name__}")
    try:
        data = await handler(engine, command)
    except ClipVaultError as exc:
        logger.warning("%s failed: %s", type(command).__name__, exc)
        return Response(ok=False, error=exc.code, message=str(exc))
    return Response(ok=True, data=data)
