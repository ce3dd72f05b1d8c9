"""Workspace list operations.

Workspaces are tags, not storage partitions: removing one leaves the clips
that carry its id untouched, and queries treat such orphans like any other
workspace id.
"""

from clipvault.config import DEFAULT_WORKSPACE_ID
from clipvault.errors import CannotDeleteDefaultError, NotFoundError
from clipvault.models import DEFAULT_WORKSPACE, Workspace
from clipvault.utils import generate_id


def ensure_default(workspaces: list[Workspace]) -> list[Workspace]:
    if any(ws.id == DEFAULT_WORKSPACE_ID for ws in workspaces):
        return list(workspaces)
    return [DEFAULT_WORKSPACE, *workspaces]


def find_workspace(workspaces: list[Workspace], workspace_id: str) -> Workspace:
    for ws in workspaces:
        if ws.id == workspace_id:
            return ws
    raise NotFoundError(workspace_id, kind="workspace")


def create_workspace(
    workspaces: list[Workspace], name: str, icon: str = "📁", color: str = "#6366f1"
) -> tuple[list[Workspace], Workspace]:
    workspace = Workspace(id=generate_id("ws"), name=name.strip() or "Untitled", icon=icon, color=color)
    return [*workspaces, workspace], workspace


def delete_workspace(workspaces: list[Workspace], workspace_id: str) -> list[Workspace]:
    if workspace_id == DEFAULT_WORKSPACE_ID:
        raise CannotDeleteDefaultError("the default workspace cannot be deleted")
    find_workspace(workspaces, workspace_id)
    return [ws for ws in workspaces if ws.id != workspace_id]
