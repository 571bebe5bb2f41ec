"""
Context pack store: builds packs from a selection and keeps a bounded history
"""
import asyncio
import uuid
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger
from pydantic import ValidationError

from local_gate.config import Settings, settings as default_settings
from local_gate.host.adapter import HostAdapter
from local_gate.services.context.formatter import default_pack_label
from local_gate.services.context.models import (
    ContextPack,
    ContextPackItem,
    PackCreationResult,
    PackSelection,
    utcnow,
)
from local_gate.services.context.ranker import coerce_top_k
from local_gate.services.context.redactor import clean_preview
from local_gate.services.utils.metrics import metrics_service

MENTION_EXTENSIONS = (".md", ".markdown")


def normalize_path(path: str) -> str:
    return (path or "").strip().replace("\\", "/").strip("/")


def mention_path_for(path: str) -> str:
    """Reference form of a path: markdown extension dropped"""
    normalized = normalize_path(path)
    lowered = normalized.lower()
    for extension in MENTION_EXTENSIONS:
        if lowered.endswith(extension) and len(normalized) > len(extension):
            return normalized[: -len(extension)]
    return normalized


def folder_path_for(path: str, source_folders: Sequence[str]) -> str:
    """Longest selected folder containing the path, else its parent directory"""
    normalized = normalize_path(path)
    best = None
    for folder in source_folders:
        candidate = normalize_path(folder)
        if candidate == "" or normalized == candidate or normalized.startswith(candidate + "/"):
            if best is None or len(candidate) > len(normalize_path(best)):
                best = folder
    if best is not None:
        return best
    return normalized.rsplit("/", 1)[0] if "/" in normalized else ""


def in_folder(path: str, folder: str) -> bool:
    folder = normalize_path(folder)
    path = normalize_path(path)
    return folder == "" or path == folder or path.startswith(folder + "/")


def generate_pack_id() -> str:
    token = uuid.uuid4().hex
    return f"cp-{token[:5]}-{token[5:9]}"


class PreviewCache:
    """Bounded path -> preview cache, least recently stored evicted first"""

    def __init__(self, capacity: int = 2000):
        self.capacity = max(1, capacity)
        self._entries: "OrderedDict[str, str]" = OrderedDict()

    def get(self, path: str) -> Optional[str]:
        if path not in self._entries:
            return None
        self._entries.move_to_end(path)
        return self._entries[path]

    def set(self, path: str, preview: str) -> None:
        self._entries[path] = preview
        self._entries.move_to_end(path)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class PackStore:
    """
    Create, find and update context packs.

    History is most-recent-first and capped; the oldest pack is evicted when
    a new one pushes it past the limit. Eviction is the only removal path.
    """

    def __init__(self, host: HostAdapter, settings: Optional[Settings] = None):
        self.host = host
        self.settings = settings or default_settings
        self.history_limit = max(1, self.settings.context_pack_history_limit)
        self.preview_cache = PreviewCache(self.settings.preview_cache_size)
        self._packs: List[ContextPack] = []
        self._issued_ids = set()

    # ------------------------------------------------------------------
    # Selection resolution
    # ------------------------------------------------------------------

    async def resolve_selection(self, folders: Sequence[str], files: Sequence[str]) -> List[str]:
        """Deduplicated, sorted file list for the selected folders and files"""
        resolved = set()
        cleaned_folders = [folder for folder in folders if isinstance(folder, str)]
        if cleaned_folders:
            candidates = await self.host.list_candidate_files()
            for candidate in candidates:
                if any(in_folder(candidate, folder) for folder in cleaned_folders):
                    resolved.add(normalize_path(candidate))
        for path in files:
            normalized = normalize_path(path) if isinstance(path, str) else ""
            if normalized:
                resolved.add(normalized)
        return sorted(resolved)

    async def _read_preview(self, path: str) -> Optional[str]:
        """Preview excerpt for a path, None when the read failed"""
        cached = self.preview_cache.get(path)
        if cached is not None:
            return cached
        try:
            raw = await asyncio.wait_for(
                self.host.read_item_content(path),
                timeout=self.settings.preview_read_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Preview read timed out for {path}")
            return None
        except Exception as exc:
            logger.warning(f"Preview read failed for {path}: {exc}")
            return None
        preview = clean_preview(raw, self.settings.context_pack_preview_chars)
        self.preview_cache.set(path, preview)
        return preview

    async def build_items(
        self, paths: Iterable[str], source_folders: Sequence[str]
    ) -> Tuple[List[ContextPackItem], int]:
        items: List[ContextPackItem] = []
        seen_mentions = set()
        failures = 0
        # One read at a time; a failed read leaves an empty preview
        for path in paths:
            mention = mention_path_for(path)
            if not mention or mention in seen_mentions:
                continue
            seen_mentions.add(mention)
            preview = await self._read_preview(path)
            if preview is None:
                failures += 1
                preview = ""
            items.append(
                ContextPackItem(
                    path=path,
                    mention_path=mention,
                    preview=preview,
                    folder_path=folder_path_for(path, source_folders),
                )
            )
        return items, failures

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        pack_id = generate_pack_id()
        while pack_id in self._issued_ids:
            pack_id = generate_pack_id()
        self._issued_ids.add(pack_id)
        return pack_id

    async def create(self, selection: PackSelection) -> PackCreationResult:
        """
        Build a pack from a selection and push it onto the history.

        Args:
            selection: Folders and/or explicit files, optional label and top_k

        Returns:
            PackCreationResult; `pack` is None when the selection is empty
        """
        folders = [normalize_path(folder) for folder in selection.folders if isinstance(folder, str)]
        paths = await self.resolve_selection(folders, selection.files)
        if not paths:
            logger.info(f"Selection resolved to zero files (folders={folders})")
            return PackCreationResult(total_files=0)

        capped = paths[: max(1, self.settings.context_pack_max_items)]
        items, failures = await self.build_items(capped, folders)

        pack = ContextPack(
            id=self._new_id(),
            label=(selection.label or "").strip() or default_pack_label(folders, paths),
            source_folders=folders,
            items=items,
            file_paths=[item.path for item in items],
            total_files=len(paths),
            top_k=coerce_top_k(selection.top_k, self.settings.context_pack_default_top_k),
        )
        self.push(pack)
        metrics_service.record_pack_created(len(items), failures)

        logger.info(
            f"Created context pack {pack.id} '{pack.label}': "
            f"{len(items)}/{len(paths)} items, {failures} preview failures"
        )
        return PackCreationResult(
            pack=pack,
            total_files=len(paths),
            item_count=len(items),
            preview_failures=failures,
        )

    def push(self, pack: ContextPack) -> None:
        """Prepend a pack, replacing one with the same id and evicting past the cap"""
        self._issued_ids.add(pack.id.lower())
        self._packs = [existing for existing in self._packs if existing.id.lower() != pack.id.lower()]
        self._packs.insert(0, pack)
        if len(self._packs) > self.history_limit:
            evicted = self._packs[self.history_limit:]
            self._packs = self._packs[: self.history_limit]
            logger.debug(f"Evicted {len(evicted)} context packs: {[p.id for p in evicted]}")

    def find(self, pack_id: str) -> Optional[ContextPack]:
        wanted = (pack_id or "").strip().lower()
        if not wanted:
            return None
        for pack in self._packs:
            if pack.id.lower() == wanted:
                return pack
        return None

    def touch(self, pack_id: str) -> Optional[ContextPack]:
        pack = self.find(pack_id)
        if pack is not None:
            pack.last_used_at = utcnow()
        return pack

    def list_packs(self) -> List[ContextPack]:
        return list(self._packs)

    def __len__(self) -> int:
        return len(self._packs)

    def export(self) -> List[Dict[str, Any]]:
        """JSON-ready history, most recent first"""
        return [pack.model_dump(mode="json") for pack in self._packs]

    def load(self, data: Iterable[Any]) -> int:
        """Replace history from exported data; invalid entries are skipped"""
        loaded: List[ContextPack] = []
        for entry in data or []:
            try:
                pack = ContextPack.model_validate(entry)
            except ValidationError as exc:
                logger.warning(f"Skipping invalid context pack entry: {exc.error_count()} errors")
                continue
            if any(existing.id.lower() == pack.id.lower() for existing in loaded):
                continue
            loaded.append(pack)
            self._issued_ids.add(pack.id.lower())
        self._packs = loaded[: self.history_limit]
        logger.info(f"Loaded {len(self._packs)} context packs")
        return len(self._packs)
