"""Best-effort bridge to a host application whose API shape is not known up front."""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

# Capability -> candidate method names, probed in order
CAPABILITY_METHODS: Dict[str, Tuple[str, ...]] = {
    "read_item_content": (
        "read_item_content",
        "readItemContent",
        "cached_read",
        "cachedRead",
        "read_file",
        "read",
    ),
    "list_candidate_folders": (
        "list_candidate_folders",
        "listCandidateFolders",
        "get_all_folders",
        "getAllFolders",
    ),
    "list_candidate_files": (
        "list_candidate_files",
        "listCandidateFiles",
        "get_markdown_files",
        "getMarkdownFiles",
        "get_files",
        "getFiles",
    ),
    "get_input_text": (
        "get_active_surface_input_text",
        "getActiveSurfaceInputText",
        "get_input_text",
        "getInputText",
    ),
    "set_input_text": (
        "set_active_surface_input_text",
        "setActiveSurfaceInputText",
        "set_input_text",
        "setInputText",
    ),
    "get_model_selection": (
        "get_active_surface_model_selection",
        "getActiveSurfaceModelSelection",
        "get_model_selection",
        "getModelSelection",
    ),
    "set_model_selection": (
        "set_active_surface_model_selection",
        "setActiveSurfaceModelSelection",
        "set_model_selection",
        "setModelSelection",
    ),
    "get_model_capabilities": (
        "get_model_capabilities",
        "getModelCapabilities",
    ),
    "get_active_surface": (
        "get_active_surface",
        "getActiveSurface",
    ),
    "intercept_send": (
        "intercept_send",
        "interceptSend",
        "on_before_send",
        "onBeforeSend",
    ),
}


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def entry_path(entry: Any) -> str:
    """File/folder entries may be plain strings or objects carrying a `path`"""
    if isinstance(entry, str):
        return entry.strip()
    path = getattr(entry, "path", None)
    if path is None and isinstance(entry, dict):
        path = entry.get("path")
    return str(path).strip() if path is not None else ""


def _selection_field(selection: Any, name: str) -> str:
    if selection is None:
        return ""
    if isinstance(selection, dict):
        value = selection.get(name)
    else:
        value = getattr(selection, name, None)
    return value.strip() if isinstance(value, str) else ""


class HostAdapter:
    """
    Probe a host object once for each capability and cache what it offers.

    Absent capabilities degrade to "feature unavailable": reads return empty
    values and writes report False, nothing raises for a missing method.
    """

    def __init__(self, host: Any):
        self.host = host
        self._methods: Dict[str, Optional[Callable[..., Any]]] = {}
        for capability, names in CAPABILITY_METHODS.items():
            self._methods[capability] = self._probe(names)

        available = [name for name, method in self._methods.items() if method is not None]
        logger.debug(f"Host {type(host).__name__} capabilities: {available}")

    def _probe(self, names: Tuple[str, ...]) -> Optional[Callable[..., Any]]:
        for name in names:
            candidate = getattr(self.host, name, None)
            if callable(candidate):
                return candidate
        return None

    def has(self, capability: str) -> bool:
        return self._methods.get(capability) is not None

    @property
    def capabilities(self) -> List[str]:
        return [name for name, method in self._methods.items() if method is not None]

    async def _call(self, capability: str, *args: Any) -> Any:
        method = self._methods.get(capability)
        if method is None:
            return None
        return await maybe_await(method(*args))

    async def read_item_content(self, path: str) -> str:
        """Read an item's text; callers decide how read errors degrade"""
        content = await self._call("read_item_content", path)
        return content if isinstance(content, str) else ""

    async def list_candidate_folders(self) -> List[str]:
        entries = await self._call("list_candidate_folders") or []
        return [path for path in (entry_path(entry) for entry in entries) if path]

    async def list_candidate_files(self) -> List[str]:
        entries = await self._call("list_candidate_files") or []
        return [path for path in (entry_path(entry) for entry in entries) if path]

    async def get_input_text(self) -> str:
        text = await self._call("get_input_text")
        return text if isinstance(text, str) else ""

    async def set_input_text(self, text: str) -> bool:
        if not self.has("set_input_text"):
            return False
        await self._call("set_input_text", text)
        return True

    async def get_model_selection(self) -> Dict[str, str]:
        selection = await self._call("get_model_selection")
        return {
            "provider": _selection_field(selection, "provider"),
            "model": _selection_field(selection, "model"),
        }

    async def set_model_selection(self, provider: str, model: str) -> bool:
        if not self.has("set_model_selection"):
            return False
        await self._call("set_model_selection", {"provider": provider, "model": model})
        return True

    async def get_model_capabilities(self, model: str) -> List[str]:
        if not model or not self.has("get_model_capabilities"):
            return []
        try:
            capabilities = await self._call("get_model_capabilities", model)
        except Exception as exc:
            logger.debug(f"Capability lookup failed for {model}: {exc}")
            return []
        if not isinstance(capabilities, (list, tuple, set)):
            return []
        return [str(entry).strip().lower() for entry in capabilities if str(entry).strip()]

    async def get_active_surface(self) -> Any:
        """Identity used to key undo snapshots; the host itself when unknown"""
        surface = await self._call("get_active_surface")
        return surface if surface is not None else self.host

    async def intercept_send(self, callback: Callable[..., Any]) -> bool:
        if not self.has("intercept_send"):
            logger.info("Host offers no send interception; send guard stays manual")
            return False
        await self._call("intercept_send", callback)
        return True
