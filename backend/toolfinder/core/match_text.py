"""Plain-Text Matching — lexeme containment between a problem and a tool's problem_solves.

Invariants:
    - A text matches when every significant lexeme of one side appears in the other
    - Stopwords and one/two-letter words are never significant
    - Empty significant sets never match

Design Decisions:
    - Mirrors the PostgreSQL path (plainto_tsquery in both directions) for engines
      without a full-text index, so tests on SQLite see the same verdicts
    - Naive suffix stripping instead of a stemmer: good enough for plural/verb forms
"""

import re

_WORD = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset({
    "a", "about", "all", "am", "an", "and", "any", "are", "as", "at", "be",
    "been", "but", "by", "can", "could", "do", "does", "for", "from", "get",
    "had", "has", "have", "he", "her", "how", "i", "if", "in", "into", "is",
    "it", "its", "me", "my", "need", "of", "on", "or", "our", "she", "so",
    "some", "that", "the", "their", "them", "there", "they", "this", "to",
    "us", "want", "was", "we", "what", "when", "which", "who", "will", "with",
    "would", "you", "your",
})

_SUFFIXES = ("ing", "es", "ed", "s")


def _stem(word: str) -> str:
    for suffix in _SUFFIXES:
        if len(word) > len(suffix) + 2 and word.endswith(suffix):
            return word[: -len(suffix)]
    return word


def lexemes(text: str) -> set[str]:
    """Significant, lightly stemmed words of a text."""
    return {
        _stem(w) for w in _WORD.findall(text.lower())
        if len(w) > 2 and w not in STOPWORDS
    }


def texts_match(query: str, candidate: str) -> bool:
    """True when either side's lexemes are fully contained in the other."""
    q, c = lexemes(query), lexemes(candidate)
    if not q or not c:
        return False
    return q <= c or c <= q
