import re
from typing import List

STOPWORDS = frozenset({
    "form",
    "with",
    "need",
    "have",
    "that",
    "this",
    "what",
    "from",
    "where",
})

MAX_KEYWORDS = 10

_SPLIT_RE = re.compile(r"[\s,;.!?]+")


def extract_keywords(text: str) -> List[str]:
    """Salient terms of a prompt, lower-cased, in first-seen order (at most 10)."""
    keywords: List[str] = []
    seen = set()
    for word in _SPLIT_RE.split((text or "").lower()):
        if len(word) <= 3 or word in STOPWORDS or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
        if len(keywords) == MAX_KEYWORDS:
            break
    return keywords
