"""Tokenizing helpers shared by search, naming and inference."""

import re
from typing import Optional

# Words that carry no meaning for naming or search
STOPWORDS = frozenset({
    "show", "get", "find", "list", "with", "that", "have", "the", "and",
    "for", "me", "all", "are", "from", "any", "what", "which", "there",
    "give", "into", "this", "those", "these", "our", "has", "was", "were",
})

_NON_WORD = re.compile(r"[^\w\s]")
_SPLIT = re.compile(r"[\s_\-]+")


def words(text: str) -> list[str]:
    """Lowercase words of text with punctuation removed."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [w for w in cleaned.split() if w]


def significant_words(text: str, limit: Optional[int] = None) -> list[str]:
    """Words longer than two characters that are not stopwords, in order."""
    result = [w for w in words(text) if len(w) > 2 and w not in STOPWORDS]
    return result[:limit] if limit is not None else result


def search_terms(text: str) -> list[str]:
    """Distinct significant terms for token-overlap search.

    Terms shorter than three characters are dropped; prepositions like
    "in" or "of" would otherwise match inside most source names.
    """
    seen: list[str] = []
    for token in _SPLIT.split(_NON_WORD.sub(" ", text.lower())):
        if len(token) > 2 and token not in STOPWORDS and token not in seen:
            seen.append(token)
    return seen


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated form of text."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def humanize(name: str) -> str:
    """Turn a dashed or underscored identifier into spaced words."""
    return re.sub(r"[-_]+", " ", name).strip()
