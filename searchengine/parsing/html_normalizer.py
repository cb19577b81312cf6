from __future__ import annotations

import re

COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
TAG_RE = re.compile(r"<[^>]*>")


def normalize(html: str | None) -> str:
    """
    Plain text of an HTML document: comments first, then every tag, then
    surrounding whitespace are removed. Entities are left as they are.
    """
    if not html:
        return ""

    text = COMMENT_RE.sub("", html)
    text = TAG_RE.sub("", text)
    return text.strip()
