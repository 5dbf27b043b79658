from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd
import phonenumbers

from .duplicates import find_duplicate_groups
from .models import Contact, Phone

logger = logging.getLogger(__name__)

# Classifier regions that libphonenumber can format.
E164_REGIONS = ("IN", "US")

CONTACT_COLUMNS = [
    "contact_id",
    "name",
    "is_main_contact",
    "parent_contact_id",
    "phones",
    "e164",
    "emails",
    "alternate_names",
    "status",
    "address",
    "suburb",
    "city",
    "pincode",
    "state",
    "country",
    "category",
    "office_address",
    "address2",
    "duplicate_group",
    "last_updated",
]

RELATIONSHIP_COLUMNS = [
    "relationship_id",
    "contact_id",
    "contact_name",
    "related_contact_id",
    "related_contact_name",
    "relationship_type",
    "description",
]

DUPLICATE_GROUP_COLUMNS = ["phone_number", "count", "contact_ids", "names"]


def phone_e164(phone: Optional[Phone]) -> str:
    """E.164 form of a classified phone, or an empty string when it cannot be derived."""
    if phone is None or not phone.is_valid or phone.region not in E164_REGIONS:
        return ""
    try:
        parsed = phonenumbers.parse(phone.number, phone.region)
    except phonenumbers.NumberParseException:
        logger.debug("phonenumbers.parse failed for %s", phone.number)
        return ""
    if not phonenumbers.is_possible_number(parsed):
        return ""
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def contacts_frame(contacts: Iterable[Contact]) -> pd.DataFrame:
    rows = []
    for contact in contacts:
        rows.append(
            {
                "contact_id": contact.id,
                "name": contact.name,
                "is_main_contact": contact.is_main_contact,
                "parent_contact_id": contact.parent_contact_id or "",
                "phones": "|".join(f"{phone.number}::{phone.type}" for phone in contact.phones),
                "e164": "|".join(
                    filter(None, (phone_e164(phone) for phone in contact.phones))
                ),
                "emails": "|".join(email.address for email in contact.emails),
                "alternate_names": "|".join(contact.alternate_names),
                "status": contact.status or "",
                "address": contact.address or "",
                "suburb": contact.suburb or "",
                "city": contact.city or "",
                "pincode": contact.pincode or "",
                "state": contact.state or "",
                "country": contact.country or "",
                "category": contact.category or "",
                "office_address": contact.office_address or "",
                "address2": contact.address2 or "",
                "duplicate_group": contact.duplicate_group or "",
                "last_updated": contact.last_updated.isoformat() if contact.last_updated else "",
            }
        )
    return pd.DataFrame(rows, columns=CONTACT_COLUMNS)


def relationships_frame(contacts: Iterable[Contact]) -> pd.DataFrame:
    """One row per edge, taken from the main contact's side of each link."""
    contacts = list(contacts)
    names = {contact.id: contact.name for contact in contacts}
    rows: List[Dict[str, str]] = []
    for contact in contacts:
        if not contact.is_main_contact:
            continue
        for edge in contact.relationships:
            rows.append(
                {
                    "relationship_id": edge.id,
                    "contact_id": edge.contact_id,
                    "contact_name": names.get(edge.contact_id, ""),
                    "related_contact_id": edge.related_contact_id,
                    "related_contact_name": names.get(edge.related_contact_id, ""),
                    "relationship_type": edge.relationship_type,
                    "description": edge.description or "",
                }
            )
    return pd.DataFrame(rows, columns=RELATIONSHIP_COLUMNS)


def duplicate_groups_frame(contacts: Iterable[Contact]) -> pd.DataFrame:
    rows = [
        {
            "phone_number": group.phone_number,
            "count": group.count,
            "contact_ids": "|".join(group.contact_ids),
            "names": json.dumps([member.name for member in group.contacts], ensure_ascii=False),
        }
        for group in find_duplicate_groups(contacts)
    ]
    return pd.DataFrame(rows, columns=DUPLICATE_GROUP_COLUMNS)


__all__ = [
    "CONTACT_COLUMNS",
    "DUPLICATE_GROUP_COLUMNS",
    "RELATIONSHIP_COLUMNS",
    "contacts_frame",
    "duplicate_groups_frame",
    "phone_e164",
    "relationships_frame",
]
