"""
Context Pack Engine facade.

One engine instance owns its pack history, undo snapshots and model-sync
cache, and drives them against a single host collaborator.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

from local_gate.config import Settings, settings as default_settings
from local_gate.host.adapter import HostAdapter
from local_gate.services.context.models import (
    ContextPack,
    ExpansionResult,
    GuardReport,
    PackCreationResult,
    PackSelection,
    ResetResult,
)
from local_gate.services.context.pack_store import PackStore
from local_gate.services.context.resolver import (
    ReferenceResolver,
    SnapshotStore,
    build_reference_token,
)
from local_gate.services.guard.runtime_target import ModelSync
from local_gate.services.guard.send_guard import SendGuard


class ContextPackEngine:
    """Creates packs, expands references in the host input and guards sends"""

    def __init__(self, host: Any, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.host = host if isinstance(host, HostAdapter) else HostAdapter(host)
        self.store = PackStore(self.host, self.settings)
        self.snapshots = SnapshotStore(self.settings.snapshot_capacity)
        self.resolver = ReferenceResolver(self.store, self.settings, self.snapshots)
        self.guard = SendGuard(self.resolver, self.settings)
        self.model_sync = ModelSync(self.host)
        self._installed = False

    # ------------------------------------------------------------------
    # Packs
    # ------------------------------------------------------------------

    async def create_pack(
        self,
        folders: Optional[Sequence[str]] = None,
        files: Optional[Sequence[str]] = None,
        label: Optional[str] = None,
        top_k: Optional[int] = None,
    ) -> PackCreationResult:
        selection = PackSelection(
            folders=list(folders or []),
            files=list(files or []),
            label=label,
            top_k=top_k,
        )
        return await self.store.create(selection)

    def find_pack(self, pack_id: str) -> Optional[ContextPack]:
        return self.store.find(pack_id)

    def list_packs(self) -> List[ContextPack]:
        return self.store.list_packs()

    async def list_candidates(self) -> Dict[str, List[str]]:
        """Folders and files the host offers for a new pack"""
        return {
            "folders": await self.host.list_candidate_folders(),
            "files": await self.host.list_candidate_files(),
        }

    async def insert_reference(self, pack_id: str) -> Optional[str]:
        """Append a pack's reference token to the active input; None if unknown"""
        pack = self.store.find(pack_id)
        if pack is None:
            return None
        token = build_reference_token(pack.id)
        current = await self.host.get_input_text()
        separator = " " if current and not current.endswith((" ", "\n")) else ""
        await self.host.set_input_text(f"{current}{separator}{token}")
        return token

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def expand_text(self, text: str, surface: Any = None) -> ExpansionResult:
        return self.resolver.expand(text, surface)

    def reset_text(self, text: str, surface: Any = None) -> ResetResult:
        return self.resolver.reset(text, surface)

    async def expand_active_input(self) -> ExpansionResult:
        surface = await self.host.get_active_surface()
        text = await self.host.get_input_text()
        result = self.resolver.expand(text, surface)
        if result.changed:
            await self.host.set_input_text(result.text)
        return result

    async def reset_active_input(self) -> ResetResult:
        surface = await self.host.get_active_surface()
        text = await self.host.get_input_text()
        result = self.resolver.reset(text, surface)
        if result.text != text:
            await self.host.set_input_text(result.text)
        return result

    # ------------------------------------------------------------------
    # Send guard
    # ------------------------------------------------------------------

    async def _model_context(self) -> Dict[str, Any]:
        selection = await self.host.get_model_selection()
        capabilities = await self.host.get_model_capabilities(
            selection.get("model") or self.settings.default_model
        )
        return {"selection": selection, "capabilities": capabilities}

    async def before_send(self, payload: Any = None) -> GuardReport:
        """Send hook: guard the active input and the outgoing payload"""
        surface = await self.host.get_active_surface()
        text = await self.host.get_input_text()
        context = await self._model_context()

        report = self.guard.process(text, payload, surface, **context)
        if report.text != text:
            await self.host.set_input_text(report.text)
        await self.model_sync.sync(report.target)
        return report

    async def guarded_send(self, send: Callable[[Any], Any], payload: Any) -> Any:
        """Guard, then call the host's own send; its failures propagate unchanged"""
        report = await self.before_send(payload)
        return await self.guard.deliver(send, report)

    async def install(self) -> bool:
        """Register the send hook with the host, once"""
        if self._installed:
            return True
        self._installed = await self.host.intercept_send(self.before_send)
        if self._installed:
            logger.info("Send guard installed on host")
        return self._installed
