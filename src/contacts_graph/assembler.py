from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .common import deterministic_uuid, resolve_columns
from .models import (
    ADDRESS_FIELDS,
    PHONE_COLUMNS,
    Contact,
    ContactRelationship,
    Email,
    Phone,
    PhoneCandidate,
    RawRow,
)
from .normalization import (
    analyze_phone_number,
    cell_to_text,
    determine_phone_type,
    extract_emails,
    parse_phone_candidates,
)
from .relationships import determine_relationship_type, resolve_related_name

logger = logging.getLogger(__name__)

# Related contacts copy these from their main contact.
INHERITED_FIELDS: Tuple[str, ...] = ("city", "state", "country")


@dataclass
class RowParseResult:
    main_contact: Contact
    related_contacts: List[Contact] = field(default_factory=list)
    dropped_labels: List[str] = field(default_factory=list)

    @property
    def contacts(self) -> List[Contact]:
        return [self.main_contact, *self.related_contacts]


def _cell(row: Sequence[object], columns: Mapping[str, int], key: str) -> str:
    index = columns.get(key)
    if index is None or index >= len(row):
        return ""
    return cell_to_text(row[index])


def _row_key(row: Sequence[object]) -> str:
    return json.dumps([cell_to_text(value) for value in row], ensure_ascii=False)


def _collect_candidates(
    row: Sequence[object], columns: Mapping[str, int]
) -> List[PhoneCandidate]:
    candidates: List[PhoneCandidate] = []
    for slot, key in enumerate(PHONE_COLUMNS):
        index = columns.get(key)
        if index is None or index >= len(row):
            continue
        candidates.extend(parse_phone_candidates(row[index], slot))
    return candidates


def _classify_candidates(
    candidates: Sequence[PhoneCandidate],
) -> Tuple[List[Phone], List[Phone]]:
    main_phones: List[Phone] = []
    labeled_phones: List[Phone] = []
    for candidate in candidates:
        classification = analyze_phone_number(candidate.raw_text)
        if classification is None:
            continue
        phone = Phone(
            id="",
            number=classification.formatted,
            type=determine_phone_type(candidate.source_field_index, candidate.label),
            is_primary=False,
            label=candidate.label or None,
            country=classification.country,
            region=classification.region,
            is_valid=classification.is_valid,
        )
        if candidate.label:
            labeled_phones.append(phone)
        else:
            main_phones.append(phone)
    main_phones = [
        replace(phone, id=f"phone_{index}", is_primary=index == 0)
        for index, phone in enumerate(main_phones)
    ]
    return main_phones, labeled_phones


def _build_related(
    main_contact: Contact, phone: Phone, ordinal: int, name: str, timestamp: datetime
) -> Tuple[Contact, ContactRelationship]:
    related_id = deterministic_uuid(f"related:{main_contact.id}:{ordinal}")
    relationship = ContactRelationship(
        id=deterministic_uuid(f"relationship:{main_contact.id}:{ordinal}"),
        contact_id=main_contact.id,
        related_contact_id=related_id,
        relationship_type=determine_relationship_type(phone.label),
        description=phone.label,
    )
    inherited: Dict[str, Optional[str]] = {
        key: getattr(main_contact, key) for key in INHERITED_FIELDS
    }
    related = Contact(
        id=related_id,
        name=name,
        is_main_contact=False,
        parent_contact_id=main_contact.id,
        phones=[replace(phone, id="phone_0", is_primary=True, label=None)],
        emails=[],
        relationships=[relationship],
        alternate_names=[phone.label or ""],
        last_updated=timestamp,
        **inherited,
    )
    return related, relationship


def parse_row(
    raw_row: RawRow,
    columns: Optional[Mapping[str, int]] = None,
    row_key: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    check_deliverability: bool = False,
) -> Optional[RowParseResult]:
    """
    Assemble one spreadsheet row into a main contact and its related contacts.

    Returns ``None`` for rows whose name cell is blank. Unlabeled phones stay
    on the main contact (the first one is primary); each labeled phone whose
    label yields a usable name becomes a related contact linked back to the
    main contact. Labeled phones with unusable labels are dropped and listed
    in ``dropped_labels``. Ids are derived from ``row_key`` (the row content
    when omitted), so the same row always yields the same ids.
    """
    columns = resolve_columns(dict(columns)) if columns is not None else resolve_columns()
    name = _cell(raw_row, columns, "name")
    if not name:
        return None

    timestamp = timestamp or datetime.now(timezone.utc)
    main_id = deterministic_uuid(f"main:{row_key if row_key is not None else _row_key(raw_row)}")
    email_index = columns.get("emails")
    email_value = raw_row[email_index] if email_index is not None and email_index < len(raw_row) else ""

    main_phones, labeled_phones = _classify_candidates(_collect_candidates(raw_row, columns))
    main_contact = Contact(
        id=main_id,
        name=name,
        is_main_contact=True,
        parent_contact_id=None,
        phones=main_phones,
        emails=extract_emails(email_value, check_deliverability=check_deliverability),
        last_updated=timestamp,
        **{key: (_cell(raw_row, columns, key) or None) for key in ADDRESS_FIELDS},
    )

    result = RowParseResult(main_contact=main_contact)
    for ordinal, phone in enumerate(labeled_phones):
        related_name = resolve_related_name(phone.label)
        if not related_name:
            logger.info("Dropped labeled phone for %s: label %r is not a name", name, phone.label)
            result.dropped_labels.append(phone.label or "")
            continue
        related, relationship = _build_related(
            main_contact, phone, ordinal, related_name, timestamp
        )
        result.related_contacts.append(related)
        main_contact.relationships.append(relationship)

    logger.debug(
        "Row %r: %d phone(s), %d email(s), %d related contact(s)",
        name,
        len(main_contact.phones),
        len(main_contact.emails),
        len(result.related_contacts),
    )
    return result


def parse_rows(
    rows: Sequence[RawRow], columns: Optional[Mapping[str, int]] = None
) -> List[Contact]:
    contacts: List[Contact] = []
    for index, row in enumerate(rows):
        parsed = parse_row(row, columns=columns, row_key=str(index))
        if parsed is not None:
            contacts.extend(parsed.contacts)
    return contacts


__all__ = ["RowParseResult", "parse_row", "parse_rows"]
