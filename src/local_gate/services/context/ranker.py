"""
Ranking service for context pack items
Token overlap against path and preview, folder priority and insertion order
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from local_gate.services.context.models import ContextPackItem
from local_gate.services.context.tokenizer import (
    overlap_score,
    sanitize_text,
    token_set,
    tokenize,
)

PATH_WEIGHT = 2.4
PREVIEW_WEIGHT = 1.1
POSITION_DECAY = 200
DEFAULT_TOP_K = 8

FOLDER_WEIGHT_STEP = 0.08
FOLDER_WEIGHT_FLOOR = 0.25


def coerce_top_k(value: Any, default: int = DEFAULT_TOP_K) -> int:
    """Return a usable top-k; values below 1 or non-numeric fall back to default"""
    if isinstance(value, bool):
        return default
    try:
        top_k = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return top_k if top_k >= 1 else default


def build_folder_weight_map(folder_paths: Optional[Iterable[str]] = None) -> Dict[str, float]:
    """Earlier folders weigh more; no folder drops below the floor"""
    weights: Dict[str, float] = {}
    cleaned = [sanitize_text(folder) for folder in (folder_paths or [])]
    for index, folder in enumerate(folder for folder in cleaned if folder):
        if folder in weights:
            continue
        weights[folder] = max(FOLDER_WEIGHT_FLOOR, 1 - index * FOLDER_WEIGHT_STEP)
    return weights


def score_item(
    item: ContextPackItem,
    index: int,
    query_tokens: List[str],
    folder_weights: Dict[str, float],
) -> float:
    path_tokens = token_set(f"{item.path} {item.mention_path}")
    preview_tokens = token_set(item.preview)

    score = (
        overlap_score(query_tokens, path_tokens, PATH_WEIGHT)
        + overlap_score(query_tokens, preview_tokens, PREVIEW_WEIGHT)
        + float(folder_weights.get(item.folder_path, 0) or 0)
    )
    # Empty query: fall back to discovery order
    if not query_tokens:
        score += max(0.0, 1 - index / POSITION_DECAY)
    return score


def rank_context_pack_items(
    items: Sequence[ContextPackItem],
    query: str = "",
    top_k: Any = DEFAULT_TOP_K,
    folder_weights: Optional[Dict[str, float]] = None,
) -> List[ContextPackItem]:
    """
    Rank pack items against a query.

    Args:
        items: Pack items in discovery order
        query: Free text the items are scored against
        top_k: Maximum number of items returned
        folder_weights: Folder priority boosts, see build_folder_weight_map

    Returns:
        Deduplicated items, best first, ties kept in discovery order
    """
    limit = coerce_top_k(top_k)
    weights = folder_weights if isinstance(folder_weights, dict) else {}
    query_tokens = tokenize(query)

    scored = [
        (score_item(item, index, query_tokens, weights), index, item)
        for index, item in enumerate(items)
    ]
    scored.sort(key=lambda entry: (-entry[0], entry[1]))

    ranked: List[ContextPackItem] = []
    seen = set()
    for _, _, item in scored:
        key = sanitize_text(item.mention_path or item.path)
        if not key or key in seen:
            continue
        seen.add(key)
        ranked.append(item)
        if len(ranked) >= limit:
            break

    logger.debug(
        f"Ranked {len(items)} items for query tokens {query_tokens[:8]}: kept {len(ranked)}/{limit}"
    )
    return ranked
