from __future__ import annotations

import math
import re

WORDS_PER_MINUTE = 200

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """
    Turn a title or name into a URL slug.

    "My First Post" -> "my-first-post"
    """
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def count_words(content: str) -> int:
    return len(content.split())


def reading_time_minutes(content: str) -> int:
    """Minutes to read ``content`` at 200 words per minute, never less than 1."""
    return max(1, math.ceil(count_words(content) / WORDS_PER_MINUTE))
