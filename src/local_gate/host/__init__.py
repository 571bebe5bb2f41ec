"""Host collaborators: the capability-probing adapter and the filesystem vault host."""

from local_gate.host.adapter import HostAdapter
from local_gate.host.vault import VaultHost

__all__ = ["HostAdapter", "VaultHost"]
