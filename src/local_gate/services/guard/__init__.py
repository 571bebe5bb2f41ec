"""Send guard and runtime target resolution."""

from local_gate.services.guard.runtime_target import ModelSync, resolve_runtime_target
from local_gate.services.guard.send_guard import SendGuard

__all__ = ["ModelSync", "resolve_runtime_target", "SendGuard"]
