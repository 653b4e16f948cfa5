"""
Error types cho Context Tree core.

Hau het failure modes trong core degrade ve "skip and continue"
(xem logging o tung module). Chi nhung loi sau duoc raise:
- ScanCancelledError: scan bi huy giua chung, caller khong duoc dung partial tree
- WorkspaceNotOpenError: goi API workspace khi chua open() hoac da close()
"""


class ContextTreeError(Exception):
    """Base class cho moi loi cua Context Tree."""


class ScanCancelledError(ContextTreeError):
    """Scan bi huy boi CancellationToken truoc khi hoan thanh."""

    def __init__(self, root: str):
        super().__init__(f"Scan cancelled: {root}")
        self.root = root


class WorkspaceNotOpenError(ContextTreeError):
    """Workspace chua duoc mo (hoac da dong)."""
