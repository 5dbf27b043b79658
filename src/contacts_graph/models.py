from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

RawRow = List[Any]

PHONE_TYPES: Tuple[str, ...] = ("mobile", "office", "residence", "fax", "other")

RELATIONSHIP_TYPES: Tuple[str, ...] = (
    "spouse",
    "child",
    "parent",
    "sibling",
    "extended_family",
    "grandparent",
    "grandchild",
    "in_law",
    "colleague",
    "assistant",
    "supervisor",
    "subordinate",
    "business_partner",
    "client",
    "friend",
    "neighbor",
    "related",
)

DEFAULT_COLUMNS: Dict[str, int] = {
    "sr_no": 0,
    "name": 1,
    "status": 2,
    "address": 3,
    "suburb": 4,
    "city": 5,
    "pincode": 6,
    "state": 7,
    "country": 8,
    "mobile1": 9,
    "mobile2": 10,
    "mobile3": 11,
    "mobile4": 12,
    "office": 13,
    "residence": 14,
    "emails": 15,
    "category": 16,
    "office_address": 17,
    "address2": 18,
}

PHONE_COLUMNS: Tuple[str, ...] = ("mobile1", "mobile2", "mobile3", "mobile4", "office", "residence")

ADDRESS_FIELDS: Tuple[str, ...] = (
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
)


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


@dataclass(frozen=True)
class PhoneCandidate:
    raw_text: str
    source_field_index: int
    label: str = ""


@dataclass(frozen=True)
class PhoneClassification:
    formatted: str
    country: str
    region: str
    is_valid: bool


@dataclass(frozen=True)
class Phone:
    id: str
    number: str
    type: str = "other"
    is_primary: bool = False
    label: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    is_valid: Optional[bool] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Phone":
        phone_type = str(payload.get("type", "") or "other").strip().lower()
        return Phone(
            id=str(payload.get("id", "") or "").strip(),
            number=str(payload.get("number", "") or "").strip(),
            type=phone_type if phone_type in PHONE_TYPES else "other",
            is_primary=bool(_opt_bool(payload.get("is_primary"))),
            label=_opt_str(payload.get("label")),
            country=_opt_str(payload.get("country")),
            region=_opt_str(payload.get("region")),
            is_valid=_opt_bool(payload.get("is_valid")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "type": self.type,
            "is_primary": self.is_primary,
            "label": self.label,
            "country": self.country,
            "region": self.region,
            "is_valid": self.is_valid,
        }


@dataclass(frozen=True)
class Email:
    id: str
    address: str
    is_primary: bool = False
    is_valid: Optional[bool] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Email":
        return Email(
            id=str(payload.get("id", "") or "").strip(),
            address=str(payload.get("address", "") or "").strip().lower(),
            is_primary=bool(_opt_bool(payload.get("is_primary"))),
            is_valid=_opt_bool(payload.get("is_valid")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "is_primary": self.is_primary,
            "is_valid": self.is_valid,
        }


@dataclass(frozen=True)
class ContactRelationship:
    id: str
    contact_id: str
    related_contact_id: str
    relationship_type: str = "related"
    description: Optional[str] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "ContactRelationship":
        relationship_type = str(payload.get("relationship_type", "") or "related").strip().lower()
        return ContactRelationship(
            id=str(payload.get("id", "") or "").strip(),
            contact_id=str(payload.get("contact_id", "") or "").strip(),
            related_contact_id=str(payload.get("related_contact_id", "") or "").strip(),
            relationship_type=(
                relationship_type if relationship_type in RELATIONSHIP_TYPES else "related"
            ),
            description=_opt_str(payload.get("description")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "related_contact_id": self.related_contact_id,
            "relationship_type": self.relationship_type,
            "description": self.description,
        }


@dataclass
class Contact:
    id: str = ""
    name: str = ""
    is_main_contact: bool = True
    parent_contact_id: Optional[str] = None
    phones: List[Phone] = field(default_factory=list)
    emails: List[Email] = field(default_factory=list)
    relationships: List[ContactRelationship] = field(default_factory=list)
    alternate_names: List[str] = field(default_factory=list)
    status: Optional[str] = None
    address: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    office_address: Optional[str] = None
    address2: Optional[str] = None
    duplicate_group: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    last_updated: Optional[datetime] = None

    @property
    def primary_phone(self) -> Optional[Phone]:
        return next((phone for phone in self.phones if phone.is_primary), None)

    @property
    def primary_email(self) -> Optional[Email]:
        return next((email for email in self.emails if email.is_primary), None)

    @staticmethod
    def _ensure_phone_list(values: Sequence[Any]) -> List[Phone]:
        return [value if isinstance(value, Phone) else Phone.from_mapping(value) for value in values]

    @staticmethod
    def _ensure_email_list(values: Sequence[Any]) -> List[Email]:
        return [value if isinstance(value, Email) else Email.from_mapping(value) for value in values]

    @staticmethod
    def _ensure_relationship_list(values: Sequence[Any]) -> List[ContactRelationship]:
        return [
            value if isinstance(value, ContactRelationship) else ContactRelationship.from_mapping(value)
            for value in values
        ]

    @staticmethod
    def _ensure_datetime(value: Any) -> Optional[datetime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value))

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "Contact":
        is_main = _opt_bool(payload.get("is_main_contact"))
        return cls(
            id=str(payload.get("id", "") or "").strip(),
            name=str(payload.get("name", "") or "").strip(),
            is_main_contact=True if is_main is None else is_main,
            parent_contact_id=_opt_str(payload.get("parent_contact_id")),
            phones=cls._ensure_phone_list(payload.get("phones", []) or []),
            emails=cls._ensure_email_list(payload.get("emails", []) or []),
            relationships=cls._ensure_relationship_list(payload.get("relationships", []) or []),
            alternate_names=[str(name) for name in payload.get("alternate_names", []) or [] if name],
            status=_opt_str(payload.get("status")),
            address=_opt_str(payload.get("address")),
            suburb=_opt_str(payload.get("suburb")),
            city=_opt_str(payload.get("city")),
            pincode=_opt_str(payload.get("pincode")),
            state=_opt_str(payload.get("state")),
            country=_opt_str(payload.get("country")),
            category=_opt_str(payload.get("category")),
            office_address=_opt_str(payload.get("office_address")),
            address2=_opt_str(payload.get("address2")),
            duplicate_group=_opt_str(payload.get("duplicate_group")),
            tags=[str(tag) for tag in payload.get("tags", []) or [] if tag],
            notes=_opt_str(payload.get("notes")),
            last_updated=cls._ensure_datetime(payload.get("last_updated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_main_contact": self.is_main_contact,
            "parent_contact_id": self.parent_contact_id,
            "phones": [phone.to_dict() for phone in self.phones],
            "emails": [email.to_dict() for email in self.emails],
            "relationships": [relationship.to_dict() for relationship in self.relationships],
            "alternate_names": list(self.alternate_names),
            "status": self.status,
            "address": self.address,
            "suburb": self.suburb,
            "city": self.city,
            "pincode": self.pincode,
            "state": self.state,
            "country": self.country,
            "category": self.category,
            "office_address": self.office_address,
            "address2": self.address2,
            "duplicate_group": self.duplicate_group,
            "tags": list(self.tags),
            "notes": self.notes,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def replace(self, **changes: Any) -> "Contact":
        return replace(self, **changes)


@dataclass(frozen=True)
class DuplicateMember:
    contact_id: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"contact_id": self.contact_id, "name": self.name}


@dataclass(frozen=True)
class DuplicateGroup:
    phone_number: str
    contacts: Tuple[DuplicateMember, ...]

    @property
    def count(self) -> int:
        return len(self.contacts)

    @property
    def contact_ids(self) -> List[str]:
        return [member.contact_id for member in self.contacts]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phone_number": self.phone_number,
            "contacts": [member.to_dict() for member in self.contacts],
            "count": self.count,
        }


@dataclass(frozen=True)
class DuplicateNumber:
    number: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"number": self.number, "count": self.count}


@dataclass(frozen=True)
class WithinContactDuplicates:
    contact_id: str
    duplicates: Tuple[DuplicateNumber, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contact_id": self.contact_id,
            "duplicates": [entry.to_dict() for entry in self.duplicates],
        }


@dataclass
class Page:
    contacts: List[Contact]
    total: int
    total_pages: int
    current_page: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contacts": [contact.to_dict() for contact in self.contacts],
            "total": self.total,
            "total_pages": self.total_pages,
            "current_page": self.current_page,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }
