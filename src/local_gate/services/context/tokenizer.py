"""
Tokenizer and overlap scorer used by context pack ranking.
Lexical only: exact token matches, no stemming.
"""
from typing import Any, Iterable, List, Set
import re

# Everything outside ascii alnum, Hangul syllables and path-ish punctuation
NON_TOKEN_CHARS = re.compile(r"[^a-z0-9가-힣_\-/:.\s]")
MIN_TOKEN_LENGTH = 2


def sanitize_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def tokenize(text: Any) -> List[str]:
    """Split text into lowercase tokens of at least two characters"""
    cleaned = NON_TOKEN_CHARS.sub(" ", sanitize_text(text).lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def token_set(text: Any) -> Set[str]:
    return set(tokenize(text))


def overlap_score(query_tokens: Iterable[str], target_set: Set[str], weight: float = 1.0) -> float:
    """Count query tokens present in the target set, scaled by weight"""
    query_tokens = list(query_tokens)
    if not query_tokens or not target_set:
        return 0
    hits = sum(1 for token in query_tokens if token in target_set)
    return hits * weight
