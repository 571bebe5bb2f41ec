"""
Send guard: last pass over a message before it leaves for the backend.

Expands leftover pack references, scrubs paths when inline context is
present, pins wire protocol and model on the outgoing request, and removes
tool/reasoning exposure so a tool-less local model does not loop on
filesystem calls it cannot make.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

from loguru import logger

from local_gate.config import Settings, settings as default_settings
from local_gate.host.adapter import maybe_await
from local_gate.services.context.formatter import GUARD_SENTENCE, HEADER_PREFIX
from local_gate.services.context.models import GuardReport, RuntimeTarget
from local_gate.services.context.redactor import normalize_blank_lines, redact_paths
from local_gate.services.context.resolver import ReferenceResolver
from local_gate.services.guard.runtime_target import resolve_runtime_target
from local_gate.services.utils.metrics import metrics_service

# Keys the walk descends into; anything else is left alone
NESTED_KEYS = (
    "payload",
    "request",
    "options",
    "config",
    "body",
    "data",
    "input",
    "message",
    "messages",
    "params",
    "args",
    "requestOptions",
    "chatRequest",
    "completionRequest",
)

# A node carrying any of these looks like a request
REQUEST_KEYS = frozenset({
    "model",
    "selectedModel",
    "messages",
    "prompt",
    "input",
    "stream",
    "tools",
    "tool_choice",
    "toolChoice",
    "wire_api",
    "wireApi",
    "apiMode",
    "api_mode",
    "temperature",
    "max_tokens",
})

WIRE_KEYS = ("wire_api", "wireApi", "apiMode", "api_mode")
MODEL_KEYS = ("model", "selectedModel")

TOOL_CHOICE_KEYS = ("tool_choice", "toolChoice")
TOOL_LIST_KEYS = ("tools", "availableTools", "enabledTools")
DISABLE_TOOL_FLAGS = ("disableTools", "disable_tools", "toolsDisabled", "tools_disabled", "noTools", "no_tools")
ENABLE_TOOL_FLAGS = (
    "enableTools",
    "enable_tools",
    "toolsEnabled",
    "tools_enabled",
    "useTools",
    "use_tools",
    "allowTools",
    "allow_tools",
    "parallel_tool_calls",
    "parallelToolCalls",
)

THINKING_FLAGS = (
    "think",
    "thinking",
    "enableThinking",
    "enable_thinking",
    "showThinking",
    "show_thinking",
    "reasoning",
    "reasoningEnabled",
    "reasoning_enabled",
    "includeReasoning",
    "include_reasoning",
    "showReasoning",
    "show_reasoning",
)
REASONING_SUB_FLAGS = THINKING_FLAGS + ("enabled", "include", "show", "visible", "exclude_from_output")

DEFAULT_MAX_DEPTH = 5


def walk_payload(payload: Any, visitor: Callable[[Dict[str, Any]], bool], max_depth: int = DEFAULT_MAX_DEPTH) -> int:
    """
    Visit dict nodes reachable through NESTED_KEYS and list elements.

    Depth-limited and guarded by a per-call seen-set, so shared or cyclic
    references are visited once. Returns how many nodes the visitor changed.
    """
    seen = set()
    changed = 0

    def visit(node: Any, depth: int) -> None:
        nonlocal changed
        if depth > max_depth or not isinstance(node, (dict, list)):
            return
        if id(node) in seen:
            return
        seen.add(id(node))

        if isinstance(node, list):
            for entry in node:
                visit(entry, depth + 1)
            return

        if visitor(node):
            changed += 1
        for key in NESTED_KEYS:
            if key in node:
                visit(node[key], depth + 1)

    visit(payload, 0)
    return changed


def is_request_shape(node: Dict[str, Any]) -> bool:
    return any(key in node for key in REQUEST_KEYS)


def _set(node: Dict[str, Any], key: str, value: Any) -> bool:
    if node.get(key) == value and type(node.get(key)) is type(value):
        return False
    node[key] = value
    return True


def apply_runtime_target(node: Dict[str, Any], target: RuntimeTarget) -> bool:
    """Pin wire protocol and model fields that the node already carries"""
    if not is_request_shape(node):
        return False
    changed = False
    for key in WIRE_KEYS:
        if key in node:
            changed |= _set(node, key, target.wire_api)
    for key in MODEL_KEYS:
        if key in node:
            changed |= _set(node, key, target.model)
    return changed


def _suppress_tools_in(node: Dict[str, Any]) -> bool:
    changed = False
    for key in TOOL_CHOICE_KEYS:
        if key in node:
            changed |= _set(node, key, "none")
    for key in TOOL_LIST_KEYS:
        if isinstance(node.get(key), list) and node[key]:
            node[key] = []
            changed = True
    for key in DISABLE_TOOL_FLAGS:
        if isinstance(node.get(key), bool):
            changed |= _set(node, key, True)
    for key in ENABLE_TOOL_FLAGS:
        if isinstance(node.get(key), bool):
            changed |= _set(node, key, False)
    return changed


def suppress_tools(node: Dict[str, Any]) -> bool:
    """Turn off tool exposure on the node and one level into its `options`"""
    changed = _suppress_tools_in(node)
    options = node.get("options")
    if isinstance(options, dict):
        changed |= _suppress_tools_in(options)
    return changed


def _flags_off(node: Dict[str, Any], keys: Iterable[str]) -> bool:
    changed = False
    for key in keys:
        if isinstance(node.get(key), bool):
            changed |= _set(node, key, False)
    return changed


def suppress_thinking(node: Dict[str, Any]) -> bool:
    """Force thinking/reasoning booleans off, directly and inside `reasoning`"""
    changed = _flags_off(node, THINKING_FLAGS)
    reasoning = node.get("reasoning")
    if isinstance(reasoning, dict):
        changed |= _flags_off(reasoning, REASONING_SUB_FLAGS)
    return changed


def describe_payload_shape(node: Any, depth: int = 0, max_depth: int = 2) -> str:
    """Compact structural summary for diagnostics; never includes values"""
    if isinstance(node, dict):
        if depth >= max_depth:
            return f"dict[{len(node)}]"
        keys = list(node)[:12]
        inner = ", ".join(f"{key}: {describe_payload_shape(node[key], depth + 1, max_depth)}" for key in keys)
        more = ", ..." if len(node) > len(keys) else ""
        return "{" + inner + more + "}"
    if isinstance(node, (list, tuple)):
        return f"list[{len(node)}]"
    if isinstance(node, str):
        return f"str[{len(node)}]"
    return type(node).__name__


class SendGuard:
    """Sanitizes outgoing text and request payloads"""

    def __init__(self, resolver: ReferenceResolver, settings: Optional[Settings] = None):
        self.resolver = resolver
        self.settings = settings or default_settings

    @staticmethod
    def has_inline_context(text: str) -> bool:
        if not text:
            return False
        if GUARD_SENTENCE in text:
            return True
        return any(line.lstrip().startswith(HEADER_PREFIX) for line in text.split("\n"))

    @staticmethod
    def enforce_inline_guard(text: str) -> str:
        """Redact paths across the whole text and keep exactly one leading guard sentence"""
        lines = [line for line in redact_paths(text).split("\n") if line.strip() != GUARD_SENTENCE]
        body = normalize_blank_lines("\n".join(lines).replace(GUARD_SENTENCE, ""))
        return f"{GUARD_SENTENCE}\n{body}" if body else GUARD_SENTENCE

    def patch_payload(self, payload: Any, target: RuntimeTarget, inline_context: bool) -> int:
        suppress_tool_exposure = inline_context and self.settings.guard_suppress_tools
        suppress_reasoning = self.settings.guard_suppress_thinking

        def visitor(node: Dict[str, Any]) -> bool:
            changed = apply_runtime_target(node, target)
            if suppress_tool_exposure:
                changed |= suppress_tools(node)
            if suppress_reasoning:
                changed |= suppress_thinking(node)
            return changed

        return walk_payload(payload, visitor, self.settings.guard_max_depth)

    def process(
        self,
        text: str,
        payload: Any = None,
        surface: Any = None,
        selection: Optional[Dict[str, Any]] = None,
        capabilities: Optional[Iterable[str]] = None,
    ) -> GuardReport:
        """
        Run the guard over the current input text and the outgoing payload.

        The payload is patched in place and also returned on the report.
        """
        expansion = self.resolver.expand(text or "", surface)
        final_text = expansion.text
        inline_context = self.has_inline_context(final_text)
        if inline_context:
            final_text = self.enforce_inline_guard(final_text)

        target = resolve_runtime_target(selection, capabilities, self.settings)
        patched = self.patch_payload(payload, target, inline_context)

        metrics_service.record_guard_run(inline_context)
        logger.debug(
            f"Send guard: target={target.provider}/{target.model} wire_api={target.wire_api} "
            f"inline_context={inline_context} patched_nodes={patched}"
        )
        return GuardReport(
            text=final_text,
            payload=payload,
            target=target,
            inline_context=inline_context,
            expansion=expansion,
            patched_nodes=patched,
        )

    async def guarded_send(
        self,
        send: Callable[[Any], Any],
        payload: Any,
        text: str = "",
        surface: Any = None,
        selection: Optional[Dict[str, Any]] = None,
        capabilities: Optional[Iterable[str]] = None,
    ) -> Any:
        """Guard the payload, then call `send`; failures are logged and re-raised unchanged"""
        report = self.process(text, payload, surface, selection, capabilities)
        return await self.deliver(send, report)

    async def deliver(self, send: Callable[[Any], Any], report: GuardReport) -> Any:
        try:
            return await maybe_await(send(report.payload))
        except Exception as exc:
            metrics_service.record_send_failure(report.target.provider)
            logger.opt(exception=exc).error(
                f"Send failed: provider={report.target.provider} model={report.target.model} "
                f"wire_api={report.target.wire_api} inline_context={report.inline_context} "
                f"payload={describe_payload_shape(report.payload)}"
            )
            raise
