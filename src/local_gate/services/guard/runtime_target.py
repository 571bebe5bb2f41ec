"""Resolution of the provider/model/wire protocol a message is sent with."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from loguru import logger

from local_gate.config import Settings, settings as default_settings
from local_gate.host.adapter import HostAdapter
from local_gate.services.context.models import RuntimeTarget


def is_vision_model(
    model: str,
    capabilities: Optional[Iterable[str]] = None,
    settings: Optional[Settings] = None,
) -> bool:
    """Vision support from discovered capabilities, else from the model name"""
    settings = settings or default_settings
    known = [str(entry).lower() for entry in (capabilities or [])]
    if not known:
        known = [entry.lower() for entry in settings.model_capabilities.get(model, [])]
    if known:
        return "vision" in known
    lowered = (model or "").lower()
    return any(pattern.lower() in lowered for pattern in settings.vision_model_patterns)


def resolve_runtime_target(
    selection: Optional[Dict[str, Any]] = None,
    capabilities: Optional[Iterable[str]] = None,
    settings: Optional[Settings] = None,
) -> RuntimeTarget:
    settings = settings or default_settings
    selection = selection or {}
    provider = str(selection.get("provider") or "").strip() or settings.default_provider
    model = str(selection.get("model") or "").strip() or settings.default_model

    vision = is_vision_model(model, capabilities, settings)
    wire_api = settings.vision_wire_api if vision and settings.prefer_vision_wire_api else settings.wire_api
    return RuntimeTarget(provider=provider, model=model, wire_api=wire_api, vision=vision)


class ModelSync:
    """
    Push the resolved target to the host's model picker.

    Keeps the last model synced per provider so repeated sends do not
    rewrite the selection, and refuses re-entrant calls while one is running.
    """

    def __init__(self, host: HostAdapter):
        self.host = host
        self.last_synced: Dict[str, str] = {}
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def sync(self, target: RuntimeTarget) -> bool:
        """Returns True when the host selection was updated"""
        if self._in_flight:
            logger.debug("Model sync already running, skipping re-entrant call")
            return False

        self._in_flight = True
        try:
            current = await self.host.get_model_selection()
            up_to_date = (
                current.get("provider") == target.provider
                and current.get("model") == target.model
            )
            if up_to_date:
                self.last_synced[target.provider] = target.model
                return False
            # Hosts that cannot report their selection are trusted to keep the last push
            if not self.host.has("get_model_selection") and self.last_synced.get(target.provider) == target.model:
                return False

            updated = await self.host.set_model_selection(target.provider, target.model)
            if updated:
                self.last_synced[target.provider] = target.model
                logger.info(f"Synced model selection to {target.provider}/{target.model}")
            return updated
        finally:
            self._in_flight = False
