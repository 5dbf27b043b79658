from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple

from .normalization import is_empty_value

# Compound terms come before their parts so "brother-in-law" is removed whole.
RELATIONSHIP_INDICATORS: Tuple[str, ...] = (
    "brother-in-law",
    "sister-in-law",
    "mother-in-law",
    "father-in-law",
    "son-in-law",
    "daughter-in-law",
    "in-law",
    "grandfather",
    "grandmother",
    "grandson",
    "granddaughter",
    "son",
    "daughter",
    "child",
    "wife",
    "husband",
    "spouse",
    "father",
    "mother",
    "parent",
    "brother",
    "sister",
    "uncle",
    "aunt",
    "cousin",
    "nephew",
    "niece",
    "friend",
    "colleague",
    "assistant",
    "secretary",
    "partner",
    "boss",
    "manager",
    "employee",
    "office",
    "work",
    "home",
    "personal",
    "mobile",
    "cell",
    "landline",
    "fax",
)

_INDICATOR_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(rf"\b{re.escape(indicator)}\b", re.IGNORECASE)
    for indicator in RELATIONSHIP_INDICATORS
)
_ARTICLES_RE = re.compile(r"\b(?:of|the|a|an)\b", re.IGNORECASE)
_PUNCTUATION_RE = re.compile(r"[^\w\s']|_")
_WHITESPACE_RE = re.compile(r"\s+")

RELATIONSHIP_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("in-law", "in law"), "in_law"),
    (("grandfather", "grandmother", "grandparent"), "grandparent"),
    (("grandson", "granddaughter", "grandchild"), "grandchild"),
    (("wife", "husband", "spouse"), "spouse"),
    (("son", "daughter", "child"), "child"),
    (("father", "mother", "parent"), "parent"),
    (("brother", "sister", "sibling"), "sibling"),
    (("uncle", "aunt", "cousin", "nephew", "niece"), "extended_family"),
    (("office", "work", "colleague"), "colleague"),
    (("assistant", "secretary"), "assistant"),
    (("boss", "manager", "supervisor"), "supervisor"),
    (("employee", "subordinate"), "subordinate"),
    (("partner",), "business_partner"),
    (("client", "customer"), "client"),
    (("friend",), "friend"),
    (("neighbor", "neighbour"), "neighbor"),
)


def _title_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def _tidy(text: str) -> str:
    text = _PUNCTUATION_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return " ".join(_title_word(word) for word in text.split(" ") if word)


def _usable(name: str) -> bool:
    return len(name) >= 2 and not name.replace(" ", "").isdigit()


def clean_relationship_name(raw_label: Optional[str]) -> Optional[str]:
    """
    Recover a person's name from a relationship label.

    ``"Wife Sunita"`` becomes ``"Sunita"``; ``"Office Manager"`` and ``"2"``
    clean down to nothing usable and return ``None``.
    """
    if not raw_label or is_empty_value(raw_label):
        return None
    cleaned = raw_label.strip()
    for pattern in _INDICATOR_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    cleaned = _tidy(_ARTICLES_RE.sub(" ", cleaned))
    if not _usable(cleaned):
        return None
    return cleaned


def resolve_related_name(raw_label: Optional[str]) -> Optional[str]:
    """
    Name to give the contact behind a labeled phone.

    A label that is nothing but relationship vocabulary (``"Wife"``,
    ``"Office Manager"``) names the contact by its role. Labels that reduce
    to digits or a single character are rejected.
    """
    name = clean_relationship_name(raw_label)
    if name:
        return name
    if not raw_label or is_empty_value(raw_label):
        return None
    stripped = raw_label.strip()
    for pattern in _INDICATOR_PATTERNS:
        stripped = pattern.sub(" ", stripped)
    if _tidy(_ARTICLES_RE.sub(" ", stripped)):
        return None
    role_name = _tidy(raw_label)
    return role_name if _usable(role_name) else None


def determine_relationship_type(label: Optional[str]) -> str:
    lowered = (label or "").lower()
    for keywords, relationship_type in RELATIONSHIP_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return relationship_type
    return "related"


__all__ = [
    "RELATIONSHIP_INDICATORS",
    "RELATIONSHIP_KEYWORDS",
    "clean_relationship_name",
    "determine_relationship_type",
    "resolve_related_name",
]
