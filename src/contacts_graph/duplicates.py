from __future__ import annotations

import logging
from collections import Counter, OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .models import (
    Contact,
    DuplicateGroup,
    DuplicateMember,
    DuplicateNumber,
    Page,
    WithinContactDuplicates,
)
from .normalization import MIN_PHONE_DIGITS, digits_only

logger = logging.getLogger(__name__)

DUPLICATE_KEY_LENGTH = 10


def normalize_phone_key(number: Optional[str]) -> str:
    """Last ten digits of ``number``; empty when it holds no digits."""
    return digits_only(number or "")[-DUPLICATE_KEY_LENGTH:]


def is_phone_group(group: Optional[str]) -> bool:
    """True when ``group`` has the shape of a phone key written by detection."""
    if not group or not group.isdigit():
        return False
    return MIN_PHONE_DIGITS <= len(group) <= DUPLICATE_KEY_LENGTH


def manual_group(contact: Contact) -> Optional[str]:
    """The contact's hand-assigned duplicate tag, ignoring phone keys from earlier passes."""
    group = contact.duplicate_group
    return None if is_phone_group(group) else group


def _phone_keys(contact: Contact) -> List[str]:
    keys = [normalize_phone_key(phone.number) for phone in contact.phones]
    return [key for key in keys if key]


def find_within_contact_duplicates(contact: Contact) -> Optional[WithinContactDuplicates]:
    counts = Counter(_phone_keys(contact))
    duplicates = tuple(
        DuplicateNumber(number=key, count=count) for key, count in counts.items() if count >= 2
    )
    if not duplicates:
        return None
    return WithinContactDuplicates(contact_id=contact.id, duplicates=duplicates)


def find_all_within_contact_duplicates(
    contacts: Iterable[Contact],
) -> List[WithinContactDuplicates]:
    results: List[WithinContactDuplicates] = []
    for contact in contacts:
        found = find_within_contact_duplicates(contact)
        if found is not None:
            results.append(found)
    return results


def find_duplicate_groups(contacts: Iterable[Contact]) -> List[DuplicateGroup]:
    """
    Group contacts that share a normalized phone number.

    A contact holding the same number twice counts once; numbers carried by
    a single contact are not groups.
    """
    by_key: "OrderedDict[str, OrderedDict[str, str]]" = OrderedDict()
    for contact in contacts:
        for key in _phone_keys(contact):
            by_key.setdefault(key, OrderedDict()).setdefault(contact.id, contact.name)
    groups = [
        DuplicateGroup(
            phone_number=key,
            contacts=tuple(
                DuplicateMember(contact_id=contact_id, name=name)
                for contact_id, name in members.items()
            ),
        )
        for key, members in by_key.items()
        if len(members) >= 2
    ]
    logger.debug("Found %d duplicate phone group(s)", len(groups))
    return groups


def detect_duplicates(contacts: Sequence[Contact]) -> List[Contact]:
    """
    Return copies of ``contacts`` annotated with ``duplicate_group``.

    Contacts sharing a normalized phone number get that number as their
    group. Everyone else keeps a manually assigned group; a phone key left
    by an earlier pass whose overlap is gone is cleared.
    """
    group_keys = {group.phone_number for group in find_duplicate_groups(contacts)}
    annotated: List[Contact] = []
    for contact in contacts:
        shared = next((key for key in _phone_keys(contact) if key in group_keys), None)
        annotated.append(contact.replace(duplicate_group=shared or manual_group(contact)))
    return annotated


def duplicate_contact_ids(contacts: Iterable[Contact]) -> Set[str]:
    ids: Set[str] = set()
    for group in find_duplicate_groups(contacts):
        ids.update(group.contact_ids)
    return ids


def _sort_name(contact: Contact) -> tuple:
    return ((contact.name or "").casefold(), contact.id)


def _duplicate_units(
    candidates: Sequence[Contact], phone_linked: Set[str]
) -> List[List[Contact]]:
    parent: Dict[str, str] = {}

    def find(x: str) -> str:
        parent.setdefault(x, x)
        if parent[x] != x:
            parent[x] = find(parent[x])
        return parent[x]

    def union(a: str, b: str) -> None:
        root_a, root_b = find(a), find(b)
        if root_a != root_b:
            parent[root_b] = root_a

    for contact in candidates:
        node = f"contact:{contact.id}"
        find(node)
        if contact.id in phone_linked:
            for key in _phone_keys(contact):
                union(node, f"phone:{key}")
        tag = manual_group(contact)
        if tag:
            union(node, f"tag:{tag}")

    units: "OrderedDict[str, List[Contact]]" = OrderedDict()
    for contact in candidates:
        units.setdefault(find(f"contact:{contact.id}"), []).append(contact)

    ordered = [sorted(members, key=_sort_name) for members in units.values()]
    ordered.sort(
        key=lambda members: (
            0 if any(member.id in phone_linked for member in members) else 1,
            _sort_name(members[0]),
        )
    )
    return ordered


def duplicates_page(
    contacts: Sequence[Contact],
    page: int = 1,
    limit: int = 20,
    phone_linked: Optional[Set[str]] = None,
) -> Page:
    """
    One page of the duplicates view.

    A contact is listed when it shares a phone number with another contact
    or carries a manual ``duplicate_group`` tag. ``phone_linked`` is the set
    of ids that share a phone across the whole population; pass it when
    ``contacts`` is already narrowed (by a search, say) so partners outside
    the narrowed set still count. Without it the set is computed from
    ``contacts``. Phone-linked groups come first, then manually tagged ones,
    each ordered by name. Pages are filled with whole groups, so a group
    larger than ``limit`` gets a page of its own.
    """
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")
    if page < 1:
        raise ValueError(f"page must be positive, got {page}")

    if phone_linked is None:
        phone_linked = duplicate_contact_ids(contacts)
    candidates = [
        contact
        for contact in contacts
        if contact.id in phone_linked or manual_group(contact)
    ]

    pages: List[List[Contact]] = []
    current: List[Contact] = []
    for unit in _duplicate_units(candidates, phone_linked):
        if current and len(current) + len(unit) > limit:
            pages.append(current)
            current = []
        current.extend(unit)
    if current:
        pages.append(current)

    return Page(
        contacts=list(pages[page - 1]) if page <= len(pages) else [],
        total=len(candidates),
        total_pages=len(pages),
        current_page=page,
    )


__all__ = [
    "DUPLICATE_KEY_LENGTH",
    "detect_duplicates",
    "duplicate_contact_ids",
    "duplicates_page",
    "find_all_within_contact_duplicates",
    "find_duplicate_groups",
    "find_within_contact_duplicates",
    "is_phone_group",
    "manual_group",
    "normalize_phone_key",
]
