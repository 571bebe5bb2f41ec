"""
Rendering of ranked context pack items into message text.

Three shapes:
- summary: folder aliases and a ranked/total count, no document content
- inline preview: one sanitized bullet per ranked item
- legacy mention: `@name [[mention/path]]` pairs for hosts that resolve mentions themselves
"""
from typing import Iterable, List, Optional, Sequence

from local_gate.config import Settings, settings as default_settings
from local_gate.services.context.models import ContextPack, ContextPackItem
from local_gate.services.context.redactor import (
    collapse_whitespace,
    redact_paths,
    sanitize_inline,
    truncate,
)
from local_gate.services.context.tokenizer import tokenize

GUARD_SENTENCE = (
    "Use only the context supplied in this message. "
    "Do not call filesystem, search, or file-reading tools."
)

HEADER_PREFIX = "[Context Pack:"
MISSING_PREFIX = "[Context Pack missing:"
FOLDERS_BULLET = "- Folders:"

MODE_SUMMARY = "summary"
MODE_PREVIEW = "preview"
MODE_MENTION = "mention"


def folder_alias(folder: str) -> str:
    """Last segment of a folder path; the vault root has no segments"""
    cleaned = (folder or "").strip().strip("/\\")
    if not cleaned:
        return "Vault"
    return cleaned.replace("\\", "/").rsplit("/", 1)[-1]


def item_title(item: ContextPackItem) -> str:
    name = (item.mention_path or item.path).replace("\\", "/").rsplit("/", 1)[-1]
    return name or item.path


def default_pack_label(folders: Sequence[str], files: Sequence[str]) -> str:
    if folders:
        aliases = [folder_alias(folder) for folder in folders]
        label = ", ".join(aliases[:3])
        if len(aliases) > 3:
            label += f" (+{len(aliases) - 3})"
        return label
    if files:
        label = folder_alias(files[0])
        if len(files) > 1:
            label += f" (+{len(files) - 1})"
        return label
    return "Selection"


def wants_preview(query: str, settings: Optional[Settings] = None) -> bool:
    """Previews are rendered when configured or when the message asks for them"""
    settings = settings or default_settings
    if settings.context_pack_include_previews:
        return True
    if not settings.context_pack_auto_preview:
        return False
    keywords = {keyword.lower() for keyword in settings.context_pack_preview_keywords}
    return any(token in keywords for token in tokenize(query))


def select_mode(query: str, settings: Optional[Settings] = None) -> str:
    settings = settings or default_settings
    if not settings.context_pack_inline:
        return MODE_MENTION
    return MODE_PREVIEW if wants_preview(query, settings) else MODE_SUMMARY


def render_header(pack: ContextPack, ranked_count: int) -> str:
    label = collapse_whitespace(redact_paths(pack.label)).replace("[", "(").replace("]", ")") or pack.id
    total = max(pack.total_files, len(pack.items), ranked_count)
    return f"{HEADER_PREFIX} {label} | {ranked_count} of {total} files]"


def render_summary(pack: ContextPack, ranked: Sequence[ContextPackItem]) -> str:
    folders = pack.source_folders or sorted({item.folder_path for item in ranked})
    aliases: List[str] = []
    for folder in folders:
        alias = folder_alias(folder)
        if alias not in aliases:
            aliases.append(alias)
    lines = [render_header(pack, len(ranked))]
    if aliases:
        lines.append(f"{FOLDERS_BULLET} {', '.join(aliases)}")
    return "\n".join(lines)


def render_preview_bullet(item: ContextPackItem, limit: int) -> str:
    title = sanitize_inline(item_title(item)) or "note"
    preview = sanitize_inline(item.preview)
    bullet = f"- {title}: {preview}" if preview else f"- {title}"
    return truncate(bullet, limit)


def render_inline_preview(
    pack: ContextPack,
    ranked: Sequence[ContextPackItem],
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or default_settings
    lines = [render_header(pack, len(ranked))]
    lines.extend(
        render_preview_bullet(item, settings.context_pack_inline_item_chars)
        for item in ranked
    )
    return "\n".join(lines)


def render_mentions(ranked: Iterable[ContextPackItem]) -> str:
    pairs = []
    for item in ranked:
        target = item.mention_path or item.path
        short = item_title(item).replace(" ", "-")
        pairs.append(f"@{short} [[{target}]]")
    return " ".join(pairs)


def render_missing(pack_id: str) -> str:
    return f"{MISSING_PREFIX} {pack_id}]"


def render_pack(
    pack: ContextPack,
    ranked: Sequence[ContextPackItem],
    mode: str,
    settings: Optional[Settings] = None,
) -> str:
    if mode == MODE_MENTION:
        return render_mentions(ranked)
    if mode == MODE_PREVIEW:
        return render_inline_preview(pack, ranked, settings)
    return render_summary(pack, ranked)
