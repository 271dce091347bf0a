#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Derive canonical software title names and search keys from release names.

Release names follow the No-Intro convention, e.g.
"Activision Decathlon, The (USA)" -> "The Activision Decathlon".
"""

import re
from dataclasses import dataclass, field
from typing import List

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)")
_DELIMITER_RE = re.compile(r"\s[-–]\s|:\s")
_NON_ALNUM_RE = re.compile(r"[^\w ]+|_+")
_TRAILING_ARTICLES = {"The", "A", "An"}
_SMALL_WORDS = {
    "the", "and", "of", "in", "to", "a", "is", "that", "it", "with", "as", "for",
    "was", "on", "are", "by", "this", "be", "or",
}


@dataclass
class NormalizedTitle:
    original: str
    canonical: str
    search_keys: List[str] = field(default_factory=list)


def remove_parentheticals(s: str) -> str:
    return _PARENTHETICAL_RE.sub("", s)


def normalize_articles(s: str) -> str:
    """Move a trailing article to the front: 'Game, The' -> 'The Game'."""
    title, sep, article = s.rpartition(", ")
    if sep and article in _TRAILING_ARTICLES:
        return f"{article} {title}"
    return s


def normalize_whitespace(s: str) -> str:
    return " ".join(s.split())


def _title_case_part(part: str) -> str:
    words = part.split()
    last = len(words) - 1
    result = []
    for i, word in enumerate(words):
        if i in (0, last) or word.lower() not in _SMALL_WORDS:
            result.append(word[:1].upper() + word[1:])
        else:
            result.append(word.lower())
    return " ".join(result)


def title_case(s: str) -> str:
    """Title case each delimiter separated part; existing capitals inside words are kept."""
    result = []
    last_end = 0
    for match in _DELIMITER_RE.finditer(s):
        result.append(_title_case_part(s[last_end:match.start()]))
        result.append(match.group(0))
        last_end = match.end()
    result.append(_title_case_part(s[last_end:]))
    return "".join(result)


def normalize_for_search(canonical: str) -> str:
    s = canonical.lower().replace("&", " and ")
    s = _NON_ALNUM_RE.sub("", s)
    return normalize_whitespace(s).strip()


def generate_search_keys(normalized: str) -> List[str]:
    """Spaced and concatenated variants; a single key when they are equal."""
    collapsed = normalized.replace(" ", "")
    if collapsed != normalized:
        return [normalized, collapsed]
    return [normalized]


def normalize_title(release_name: str) -> NormalizedTitle:
    s = remove_parentheticals(release_name)
    s = normalize_articles(s)
    s = normalize_whitespace(s)
    s = title_case(s)
    return NormalizedTitle(
        original=release_name,
        canonical=s,
        search_keys=generate_search_keys(normalize_for_search(s)),
    )


def software_title_name(release_name: str) -> str:
    return normalize_title(release_name).canonical
