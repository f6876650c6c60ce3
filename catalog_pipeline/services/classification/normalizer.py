"""Text canonicalization shared by rule matching and attribute extraction."""
import re
import unicodedata
from typing import Iterable, Optional, Tuple

_NON_ALNUM_RE = re.compile(r"[^A-Z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Canonicalize free text for comparison.
    
    Uppercases, strips diacritics, replaces anything outside ``[A-Z0-9]`` and
    whitespace with a space, collapses whitespace and trims. The function is
    pure and idempotent.
    
    Example:
        normalize_text("Calça Jeans (azul)")  # "CALCA JEANS AZUL"
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.upper())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _NON_ALNUM_RE.sub(" ", stripped)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def normalize_terms(terms: Iterable[Optional[str]]) -> Tuple[str, ...]:
    """Normalize a term list, dropping terms that normalize to nothing.
    
    An empty term would be a substring of every text, so it is discarded
    rather than allowed to match everything.
    """
    normalized = (normalize_text(t) for t in terms)
    return tuple(t for t in normalized if t)
