"""Free-text answer matching against a category's closed answer set.

Matching is exact on the normalized key; there is no fuzzy matching, so the
same input always resolves the same way.
"""
import re
import unicodedata

from ..models import Answer, Category

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text).lower()
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = stripped.replace("&", " and ")
    stripped = _NON_ALNUM.sub(" ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def resolve(category: Category | None, key: str) -> Answer | None:
    """Return the first answer whose text or alias normalizes to ``key``."""
    if category is None or not key:
        return None
    for answer in category.answers:
        if normalize(answer.text) == key:
            return answer
        for alias in answer.aliases:
            if normalize(alias) == key:
                return answer
    return None
