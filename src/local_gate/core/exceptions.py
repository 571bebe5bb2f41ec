"""
Exceptions raised by the context pack engine.

Most engine failures are non-fatal (missing references render a
marker, unreadable items get an empty preview). These exceptions cover the
few places where a caller has to be told that nothing happened.
"""


class LocalGateError(Exception):
    """Base class for engine errors"""


class PackNotFoundError(LocalGateError):
    """Raised by explicit lookups when no pack matches the id"""

    def __init__(self, pack_id: str):
        super().__init__(f"Context pack '{pack_id}' not found")
        self.pack_id = pack_id


class EmptySelectionError(LocalGateError):
    """Raised when a selection resolves to zero files and the caller requires a pack"""

    def __init__(self, folders=None, files=None):
        super().__init__("Selection resolved to zero files")
        self.folders = list(folders or [])
        self.files = list(files or [])
