"""Page Text & URL Checks — pure helpers for the tool extraction path.

Invariants:
    - html_to_text drops script/style/noscript/template elements and comments,
      decodes entities, collapses whitespace
    - Output never exceeds the character budget (default 8000)
    - is_valid_url accepts only absolute http(s) URLs with a host; no network access
"""

import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Comment

PAGE_TEXT_LIMIT = 8000

_HIDDEN_TAGS = ["script", "style", "noscript", "template"]
_WS_RE = re.compile(r"\s+")


def html_to_text(html: str, limit: int = PAGE_TEXT_LIMIT) -> str:
    """Visible text of an HTML page, truncated to `limit` characters."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(_HIDDEN_TAGS):
        element.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    text = _WS_RE.sub(" ", soup.get_text(" ")).strip()
    return text[:limit]


def is_valid_url(candidate: str | None) -> bool:
    if not candidate or any(c.isspace() for c in candidate.strip()):
        return False
    try:
        parsed = urlparse(candidate.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
