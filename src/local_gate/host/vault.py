"""Filesystem-backed host: a notes folder on disk plus an in-memory input box."""

from __future__ import annotations

import asyncio
import fnmatch
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from local_gate.config import Settings, settings as default_settings
from local_gate.host.adapter import maybe_await


class VaultHost:
    """
    Host collaborator over a local folder of notes.

    Files are addressed by POSIX paths relative to the root. Hidden entries
    (e.g. `.obsidian`, `.git`) are never listed. Send hooks registered with
    `intercept_send` run before `send` hands the payload to the transport.
    """

    def __init__(
        self,
        root: Path,
        settings: Optional[Settings] = None,
        *,
        exclude_patterns: Optional[Iterable[str]] = None,
        transport: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.root = Path(root)
        self.settings = settings or default_settings
        self.extensions = {ext.lower() for ext in self.settings.vault_extensions}
        self.exclude_patterns = list(exclude_patterns or [])
        self.transport = transport
        self.input_text = ""
        self.model_selection: Dict[str, str] = {}
        self.send_hooks: List[Callable[[Any], Any]] = []

    def _should_skip(self, relative_path: Path) -> bool:
        if any(part.startswith(".") for part in relative_path.parts):
            return True
        posix_path = relative_path.as_posix()
        return any(fnmatch.fnmatch(posix_path, pattern) for pattern in self.exclude_patterns)

    def _resolve(self, path: str) -> Path:
        candidate = (self.root / path).resolve()
        root = self.root.resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Path escapes vault root: {path}")
        return candidate

    # Selection universe

    def list_candidate_files(self) -> List[str]:
        if not self.root.exists():
            logger.warning(f"Vault path does not exist: {self.root}")
            return []
        files = []
        for path in self.root.rglob("*"):
            if not path.is_file() or path.suffix.lower() not in self.extensions:
                continue
            relative_path = path.relative_to(self.root)
            if self._should_skip(relative_path):
                continue
            files.append(relative_path.as_posix())
        return sorted(files)

    def list_candidate_folders(self) -> List[str]:
        if not self.root.exists():
            return []
        folders = []
        for path in self.root.rglob("*"):
            if not path.is_dir():
                continue
            relative_path = path.relative_to(self.root)
            if self._should_skip(relative_path):
                continue
            folders.append(relative_path.as_posix())
        return sorted(folders)

    def _read_head(self, path: str) -> str:
        target = self._resolve(path)
        with target.open("rb") as handle:
            raw = handle.read(self.settings.max_preview_bytes)
        return raw.decode("utf-8", errors="replace")

    async def read_item_content(self, path: str) -> str:
        """Read the head of a note off the event loop"""
        return await asyncio.to_thread(self._read_head, path)

    # Conversation surface

    def get_active_surface_input_text(self) -> str:
        return self.input_text

    def set_active_surface_input_text(self, text: str) -> None:
        self.input_text = text

    def get_active_surface_model_selection(self) -> Dict[str, str]:
        return dict(self.model_selection)

    def set_active_surface_model_selection(self, selection: Dict[str, str]) -> None:
        self.model_selection = {
            "provider": selection.get("provider", ""),
            "model": selection.get("model", ""),
        }

    def intercept_send(self, callback: Callable[[Any], Any]) -> None:
        self.send_hooks.append(callback)

    async def send(self, payload: Any) -> Any:
        """Run send hooks, then deliver the payload through the transport"""
        for hook in self.send_hooks:
            await maybe_await(hook(payload))
        if self.transport is None:
            return payload
        return await maybe_await(self.transport(payload))
