"""
Text cleanup for context pack content.

Best-effort structural cleanup with regular expressions, not a markdown
parser. False positives are accepted on the redaction side: anything that
looks like a filesystem path is replaced, including dates or ratios written
with slashes.
"""
import re
from typing import List

PATH_PLACEHOLDER = "[path]"

FRONT_MATTER_RE = re.compile(
    r"\A\ufeff?\s*(?:---|\+\+\+)[ \t]*\n.*?\n(?:---|\+\+\+|\.\.\.)[ \t]*(?:\n|\Z)",
    re.DOTALL,
)

# Markup
CODE_FENCE_RE = re.compile(r"^[ \t]*(?:```|~~~).*$", re.MULTILINE)
COMMENT_RE = re.compile(r"%%.*?%%|<!--.*?-->", re.DOTALL)
CALLOUT_RE = re.compile(r"\[![^\]]*\][+-]?")
IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
WIKI_LINK_RE = re.compile(r"!?\[\[([^\]|#^]*)(?:[#^][^\]|]*)?(?:\|([^\]]*))?\]\]")
HTML_TAG_RE = re.compile(r"</?[A-Za-z][^>]*>")
HEADING_RE = re.compile(r"^[ \t]*#{1,6}[ \t]+", re.MULTILINE)
BLOCKQUOTE_RE = re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE)
LIST_MARKER_RE = re.compile(r"^[ \t]*(?:[-*+]|\d+[.)])[ \t]+(?:\[[ xX]\][ \t]+)?", re.MULTILINE)
EMPHASIS_RE = re.compile(r"(\*\*|__|\*|~~|==)(\S(?:.*?\S)?)\1")
INLINE_CODE_RE = re.compile(r"`+")
TABLE_RULE_RE = re.compile(r"^[ \t]*\|?[ \t]*:?-{3,}:?[ \t]*(?:\|[ \t]*:?-{3,}:?[ \t]*)*\|?[ \t]*$", re.MULTILINE)
HORIZONTAL_RULE_RE = re.compile(r"^[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE)

# Metadata noise
METADATA_KEY_RE = re.compile(
    r"\b(?:id|uuid|created|created_at|createdAt|updated|updated_at|updatedAt|modified|date|"
    r"aliases|tags|cssclass|cssclasses|publish|permalink|status|version)\s*:\s*[^\s,;]*",
    re.IGNORECASE,
)
ISO_TIMESTAMP_RE = re.compile(
    r"\b\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?\b"
)
CLOCK_RE = re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?(?:\s?[AaPp][Mm])?\b")
COUNTER_RE = re.compile(r"(?<!\w)#\d+\b|\b\d{5,}\b")

# Paths
FILE_URL_RE = re.compile(r"\bfile:/{2,3}\S*", re.IGNORECASE)
DRIVE_PATH_RE = re.compile(r"(?<![\w])[A-Za-z]:[\\/][^\s\"'`<>|]*")
UNC_PATH_RE = re.compile(r"\\\\[^\s\\]+(?:\\[^\s\\]+)+")
ABSOLUTE_PATH_RE = re.compile(r"(?<![^\s(\[{<\"'`=,:])~?/[^\s/\"'`()<>\[\]{}]+(?:/[^\s/\"'`()<>\[\]{}]*)*")
MULTI_SEGMENT_PATH_RE = re.compile(r"(?<![\w.\-~@%+])[\w.\-~@%+]+(?:/[\w.\-~@%+]+)+/?")

PATH_PATTERNS = (
    FILE_URL_RE,
    DRIVE_PATH_RE,
    UNC_PATH_RE,
    ABSOLUTE_PATH_RE,
    MULTI_SEGMENT_PATH_RE,
)

BLANK_RUN_RE = re.compile(r"\n{3,}")


def strip_front_matter(text: str) -> str:
    """Drop a leading YAML/TOML header block"""
    return FRONT_MATTER_RE.sub("", text or "", count=1)


def _wiki_label(match: re.Match) -> str:
    alias = (match.group(2) or "").strip()
    if alias:
        return alias
    target = (match.group(1) or "").strip().rstrip("/")
    return target.rsplit("/", 1)[-1]


def collapse_markup(text: str) -> str:
    """Reduce markdown/html structure to plain prose"""
    if not text:
        return ""
    text = COMMENT_RE.sub(" ", text)
    text = CODE_FENCE_RE.sub("", text)
    text = TABLE_RULE_RE.sub("", text)
    text = HORIZONTAL_RULE_RE.sub("", text)
    text = CALLOUT_RE.sub("", text)
    text = IMAGE_RE.sub(r"\1", text)
    text = WIKI_LINK_RE.sub(_wiki_label, text)
    text = LINK_RE.sub(r"\1", text)
    text = HTML_TAG_RE.sub(" ", text)
    text = HEADING_RE.sub("", text)
    text = BLOCKQUOTE_RE.sub("", text)
    text = LIST_MARKER_RE.sub("", text)
    text = EMPHASIS_RE.sub(r"\2", text)
    text = INLINE_CODE_RE.sub("", text)
    return text.replace("|", " ")


def strip_metadata_noise(text: str) -> str:
    """Remove timestamps, counters and structural key/value tokens"""
    if not text:
        return ""
    text = METADATA_KEY_RE.sub(" ", text)
    text = ISO_TIMESTAMP_RE.sub(" ", text)
    text = CLOCK_RE.sub(" ", text)
    return COUNTER_RE.sub(" ", text)


def redact_paths(text: str, placeholder: str = PATH_PLACEHOLDER) -> str:
    """Replace anything path-like with a placeholder, keeping the prose around it"""
    if not text:
        return ""
    for pattern in PATH_PATTERNS:
        text = pattern.sub(placeholder, text)
    return text


def find_paths(text: str) -> List[str]:
    """Path-like substrings that redact_paths would replace"""
    found: List[str] = []
    for pattern in PATH_PATTERNS:
        found.extend(match.group(0) for match in pattern.finditer(text or ""))
    return found


def collapse_whitespace(text: str) -> str:
    return " ".join((text or "").split())


def clean_preview(text: str, limit: int = 0) -> str:
    """Plain-text excerpt stored on a pack item"""
    cleaned = collapse_whitespace(collapse_markup(strip_front_matter(text)))
    if limit and len(cleaned) > limit:
        cleaned = cleaned[:limit].rstrip()
    return cleaned


def sanitize_inline(text: str) -> str:
    """Full cleanup for content injected into a message"""
    text = collapse_markup(strip_front_matter(text))
    text = strip_metadata_noise(text)
    return collapse_whitespace(redact_paths(text))


def truncate(text: str, limit: int, ellipsis: str = "...") -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    if limit <= len(ellipsis):
        return text[:limit]
    return text[: limit - len(ellipsis)].rstrip() + ellipsis


def normalize_blank_lines(text: str) -> str:
    lines = [line.rstrip() for line in (text or "").split("\n")]
    return BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip("\n")
