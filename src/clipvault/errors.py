"""Error taxonomy raised by the history engine and its store."""


class ClipVaultError(Exception):
    """Base class for every error the engine reports to callers."""

    code = "Error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class EmptyContentError(ClipVaultError):
    code = "EmptyContent"


class NotFoundError(ClipVaultError):
    code = "NotFound"

    def __init__(self, item_id: str, kind: str = "clip"):
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class CannotDeleteDefaultError(ClipVaultError):
    code = "CannotDeleteDefault"


class InsufficientClipsError(ClipVaultError):
    code = "InsufficientClips"


class UnsupportedClipError(ClipVaultError):
    code = "UnsupportedClip"


class StoreIOError(ClipVaultError):
    code = "IOError"


class InvalidImportError(ClipVaultError):
    code = "InvalidImport"


class InvalidRequestError(ClipVaultError):
    code = "InvalidRequest"
