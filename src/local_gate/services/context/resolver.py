"""
Reference resolution: `@context-pack(<id>)` tokens in free text are replaced
by ranked, formatted pack content, with a one-level undo snapshot per
conversation surface.
"""

from __future__ import annotations

import re
import weakref
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from loguru import logger

from local_gate.config import Settings, settings as default_settings
from local_gate.services.context.formatter import (
    FOLDERS_BULLET,
    GUARD_SENTENCE,
    HEADER_PREFIX,
    MODE_MENTION,
    render_missing,
    render_pack,
    select_mode,
)
from local_gate.services.context.models import (
    ContextPack,
    ContextPackItem,
    ExpansionResult,
    InputSnapshot,
    ResetResult,
)
from local_gate.services.context.pack_store import (
    PackStore,
    folder_path_for,
    mention_path_for,
)
from local_gate.services.context.ranker import (
    build_folder_weight_map,
    rank_context_pack_items,
)
from local_gate.services.context.redactor import collapse_whitespace, normalize_blank_lines
from local_gate.services.utils.metrics import metrics_service

REFERENCE_TOKEN_RE = re.compile(r"@context-pack\(([a-z0-9][a-z0-9-]{5,})\)", re.IGNORECASE)
# Token plus the horizontal whitespace around it, replaced as one unit
REFERENCE_SLOT_RE = re.compile(r"[ \t]*@context-pack\(([a-z0-9][a-z0-9-]{5,})\)[ \t]*", re.IGNORECASE)

CONTEXT_PACK_LINE_RE = re.compile(r"^\s*\[Context Pack\b[^\n]*\]\s*$")
MENTION_ONLY_LINE_RE = re.compile(r"^\s*(?:(?:@[^\s\[\]]+|\[\[[^\]\n]+\]\])\s*)+$")
BULLET_PREFIX = "- "
# Every `@` in front of a token, so `@@context-pack(...)` cannot leave one behind
DEFANG_RE = re.compile(r"@+(?=context-pack\([a-z0-9][a-z0-9-]{5,}\))", re.IGNORECASE)


def build_reference_token(pack_id: str) -> str:
    return f"@context-pack({pack_id})"


def find_reference_ids(text: str) -> List[str]:
    """Referenced ids in order of first appearance, lowercased"""
    ids: List[str] = []
    for match in REFERENCE_TOKEN_RE.finditer(text or ""):
        pack_id = match.group(1).lower()
        if pack_id not in ids:
            ids.append(pack_id)
    return ids


def strip_reference_tokens(text: str) -> str:
    """Query text: the message without its reference tokens"""
    return collapse_whitespace(REFERENCE_TOKEN_RE.sub(" ", text or ""))


def defang_reference_tokens(text: str) -> str:
    """Drop the `@` from tokens inside rendered content so they never expand again"""
    return DEFANG_RE.sub("", text)


def pack_items(pack: ContextPack) -> List[ContextPackItem]:
    """Pack items, rebuilt from file_paths when a pack carries no items"""
    if pack.items:
        return list(pack.items)
    return [
        ContextPackItem(
            path=path,
            mention_path=mention_path_for(path),
            folder_path=folder_path_for(path, pack.source_folders),
        )
        for path in pack.file_paths
        if mention_path_for(path)
    ]


def is_expansion_artifact(line: str) -> bool:
    stripped = line.strip()
    return (
        stripped == GUARD_SENTENCE
        or stripped.startswith(FOLDERS_BULLET)
        or bool(CONTEXT_PACK_LINE_RE.match(line))
        or bool(MENTION_ONLY_LINE_RE.match(line))
    )


def strip_expansion_artifacts(text: str) -> str:
    """Remove guard lines, pack headers with the bullets under them, and mention-only lines"""
    text = text or ""
    lines = text.split("\n")
    kept: List[str] = []
    under_header = False
    for line in lines:
        if line.lstrip().startswith(HEADER_PREFIX) and CONTEXT_PACK_LINE_RE.match(line):
            under_header = True
            continue
        if under_header and line.lstrip().startswith(BULLET_PREFIX):
            continue
        under_header = False
        if not is_expansion_artifact(line):
            kept.append(line)
    if len(kept) == len(lines):
        return text
    return normalize_blank_lines("\n".join(kept))


class SnapshotStore:
    """
    Last expansion per surface.

    Surfaces that support weak references are tracked weakly, so a closed
    conversation view takes its snapshot with it. Other keys (ids, strings)
    live in a small bounded map.
    """

    def __init__(self, capacity: int = 64):
        self.capacity = max(1, capacity)
        self._weak: "weakref.WeakKeyDictionary[Any, InputSnapshot]" = weakref.WeakKeyDictionary()
        self._strong: "OrderedDict[Any, InputSnapshot]" = OrderedDict()

    def _is_weak(self, surface: Any) -> bool:
        try:
            weakref.ref(surface)
        except TypeError:
            return False
        return True

    def put(self, surface: Any, snapshot: InputSnapshot) -> None:
        if self._is_weak(surface):
            self._weak[surface] = snapshot
            return
        self._strong[surface] = snapshot
        self._strong.move_to_end(surface)
        while len(self._strong) > self.capacity:
            self._strong.popitem(last=False)

    def get(self, surface: Any) -> Optional[InputSnapshot]:
        if self._is_weak(surface):
            return self._weak.get(surface)
        return self._strong.get(surface)

    def discard(self, surface: Any) -> None:
        if self._is_weak(surface):
            self._weak.pop(surface, None)
        else:
            self._strong.pop(surface, None)


class ReferenceResolver:
    """Expands pack references in text and undoes the most recent expansion"""

    DEFAULT_SURFACE = "default"

    def __init__(
        self,
        store: PackStore,
        settings: Optional[Settings] = None,
        snapshots: Optional[SnapshotStore] = None,
    ):
        self.store = store
        self.settings = settings or default_settings
        self.snapshots = snapshots or SnapshotStore(self.settings.snapshot_capacity)

    def _surface_key(self, surface: Any) -> Any:
        return self.DEFAULT_SURFACE if surface is None else surface

    def render_reference(self, pack: ContextPack, query: str, mode: str) -> str:
        ranked = rank_context_pack_items(
            pack_items(pack),
            query=query,
            top_k=pack.top_k,
            folder_weights=build_folder_weight_map(pack.source_folders),
        )
        return render_pack(pack, ranked, mode, self.settings)

    def expand(self, text: str, surface: Any = None) -> ExpansionResult:
        """
        Replace every reference token in `text`.

        Missing packs leave a visible marker instead of failing; text without
        tokens is returned unchanged, which makes expansion idempotent.
        """
        text = text or ""
        pack_ids = find_reference_ids(text)
        if not pack_ids:
            return ExpansionResult(text=text)

        query = strip_reference_tokens(text)
        mode = select_mode(query, self.settings)
        inline = mode != MODE_MENTION

        blocks: Dict[str, str] = {}
        expanded_ids: List[str] = []
        missing_ids: List[str] = []
        for pack_id in pack_ids:
            pack = self.store.find(pack_id)
            if pack is None:
                logger.info(f"Context pack reference not found: {pack_id}")
                missing_ids.append(pack_id)
                blocks[pack_id] = render_missing(pack_id)
                continue

            block = defang_reference_tokens(self.render_reference(pack, query, mode))
            if inline and not expanded_ids:
                block = f"{GUARD_SENTENCE}\n{block}"
            blocks[pack_id] = block
            expanded_ids.append(pack_id)

        def substitute(match: re.Match) -> str:
            return f"\n{blocks[match.group(1).lower()]}\n"

        result = normalize_blank_lines(REFERENCE_SLOT_RE.sub(substitute, text))

        for pack_id in expanded_ids:
            self.store.touch(pack_id)

        changed = result != text
        if changed:
            self.snapshots.put(self._surface_key(surface), InputSnapshot(before=text, after=result))

        metrics_service.record_expansion(len(expanded_ids), len(missing_ids))
        logger.info(
            f"Expanded {len(expanded_ids)} context pack references "
            f"({len(missing_ids)} missing, mode={mode})"
        )
        return ExpansionResult(
            text=result,
            changed=changed,
            expanded_ids=expanded_ids,
            missing_ids=missing_ids,
            inline_context=inline and bool(expanded_ids),
        )

    def reset(self, text: str, surface: Any = None) -> ResetResult:
        """Undo the last expansion exactly if possible, else strip its artifacts"""
        text = text or ""
        key = self._surface_key(surface)
        snapshot = self.snapshots.get(key)
        if snapshot is not None and snapshot.after == text:
            self.snapshots.discard(key)
            logger.debug("Restored input from expansion snapshot")
            return ResetResult(text=snapshot.before, restored=True)

        stripped = strip_expansion_artifacts(text)
        return ResetResult(text=stripped, stripped=stripped != text)
