from __future__ import annotations


class ContactsGraphError(Exception):
    """Base class for errors raised by the contacts graph pipeline."""


class RowSourceError(ContactsGraphError):
    """The row source is missing, unreadable or holds no data rows."""


class ContactStoreError(ContactsGraphError):
    """A contact store could not complete a write or lookup."""


class ContactNotFoundError(ContactStoreError):
    def __init__(self, contact_id: str):
        super().__init__(f"contact not found: {contact_id}")
        self.contact_id = contact_id


__all__ = [
    "ContactNotFoundError",
    "ContactStoreError",
    "ContactsGraphError",
    "RowSourceError",
]
