"""Contact store interface and an in-memory implementation."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Protocol

from .duplicates import duplicate_contact_ids, duplicates_page
from .errors import ContactNotFoundError, ContactStoreError
from .models import Contact, Page

logger = logging.getLogger(__name__)

FILTERS = ("all", "main", "related", "duplicates")
_CONTACT_FIELDS = {f.name for f in fields(Contact)}


@dataclass
class ContactFilters:
    filter: str = "all"
    search: Optional[str] = None

    def __post_init__(self) -> None:
        if self.filter not in FILTERS:
            raise ValueError(f"Unknown contact filter: {self.filter!r}")


@dataclass
class Pagination:
    page: int = 1
    limit: int = 20


@dataclass
class CreateManyResult:
    count: int = 0
    ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class ContactStore(Protocol):
    """Persists contacts. Adapters wrap their own failures in ContactStoreError."""

    def create(self, contact: Contact) -> str:
        """Store a contact and return its id (assigned when the contact has none)."""
        ...

    def create_many(self, contacts: List[Contact]) -> CreateManyResult:
        ...

    def update(self, contact_id: str, **changes: Any) -> Contact:
        ...

    def delete(self, contact_id: str) -> None:
        ...

    def find_by_id(self, contact_id: str) -> Optional[Contact]:
        ...

    def query(self, filters: ContactFilters, pagination: Pagination) -> Page:
        ...

    def all(self) -> List[Contact]:
        """Snapshot of every stored contact in insertion order."""
        ...


def _matches_search(contact: Contact, term: str) -> bool:
    needle = term.lower()
    compact = needle.replace(" ", "")
    haystack = [contact.name, contact.city or "", contact.category or ""]
    if any(needle in value.lower() for value in haystack):
        return True
    if compact and any(compact in phone.number.replace(" ", "") for phone in contact.phones):
        return True
    if any(needle in email.address for email in contact.emails):
        return True
    return any(needle == name.lower() for name in contact.alternate_names)


class InMemoryContactStore:
    """Stores contacts in a dict. Order preserved by insertion."""

    def __init__(self) -> None:
        self._by_id: Dict[str, Contact] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def create(self, contact: Contact) -> str:
        contact_id = contact.id or str(uuid.uuid4())
        if contact_id in self._by_id:
            raise ContactStoreError(f"contact id already exists: {contact_id}")
        if contact.parent_contact_id:
            parent = self._by_id.get(contact.parent_contact_id)
            if parent is None:
                raise ContactStoreError(
                    f"parent contact not found for {contact.name}: {contact.parent_contact_id}"
                )
            if not parent.is_main_contact:
                raise ContactStoreError(
                    f"related contact {contact.name} cannot hang off another related contact"
                )
        self._by_id[contact_id] = contact.replace(id=contact_id)
        return contact_id

    def create_many(self, contacts: List[Contact]) -> CreateManyResult:
        result = CreateManyResult()
        for contact in contacts:
            try:
                result.ids.append(self.create(contact))
                result.count += 1
            except ContactStoreError as exc:
                result.errors.append(f"Failed to save contact {contact.name}: {exc}")
        return result

    def update(self, contact_id: str, **changes: Any) -> Contact:
        current = self._by_id.get(contact_id)
        if current is None:
            raise ContactNotFoundError(contact_id)
        rejected = sorted((set(changes) - _CONTACT_FIELDS) | ({"id"} & set(changes)))
        if rejected:
            raise ContactStoreError(f"cannot update field(s): {', '.join(rejected)}")
        updated = current.replace(**changes)
        self._by_id[contact_id] = updated
        return updated

    def delete(self, contact_id: str) -> None:
        if contact_id not in self._by_id:
            raise ContactNotFoundError(contact_id)
        doomed = {contact_id} | {
            contact.id
            for contact in self._by_id.values()
            if contact.parent_contact_id == contact_id
        }
        for doomed_id in doomed:
            del self._by_id[doomed_id]
        for other_id, contact in list(self._by_id.items()):
            kept = [
                relationship
                for relationship in contact.relationships
                if relationship.contact_id not in doomed
                and relationship.related_contact_id not in doomed
            ]
            if len(kept) != len(contact.relationships):
                self._by_id[other_id] = contact.replace(relationships=kept)
        logger.debug("Deleted %d contact(s) starting from %s", len(doomed), contact_id)

    def find_by_id(self, contact_id: str) -> Optional[Contact]:
        return self._by_id.get(contact_id)

    def all(self) -> List[Contact]:
        return list(self._by_id.values())

    def query(self, filters: ContactFilters, pagination: Pagination) -> Page:
        contacts = self.all()
        # Duplicate partners are found across every contact, before the search narrows the list.
        phone_linked = duplicate_contact_ids(contacts) if filters.filter == "duplicates" else None
        if filters.search:
            contacts = [c for c in contacts if _matches_search(c, filters.search.strip())]
        if phone_linked is not None:
            return duplicates_page(
                contacts,
                page=pagination.page,
                limit=pagination.limit,
                phone_linked=phone_linked,
            )
        if filters.filter == "main":
            contacts = [c for c in contacts if c.is_main_contact]
        elif filters.filter == "related":
            contacts = [c for c in contacts if not c.is_main_contact]

        contacts.sort(key=lambda c: ((c.name or "").casefold(), not c.is_main_contact, c.id))
        total = len(contacts)
        start = (pagination.page - 1) * pagination.limit
        return Page(
            contacts=contacts[start : start + pagination.limit],
            total=total,
            total_pages=math.ceil(total / pagination.limit) if pagination.limit else 0,
            current_page=pagination.page,
        )


__all__ = [
    "ContactFilters",
    "ContactStore",
    "CreateManyResult",
    "FILTERS",
    "InMemoryContactStore",
    "Pagination",
]
