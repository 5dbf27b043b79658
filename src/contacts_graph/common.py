from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from .config_loader import PipelineConfig, load_pipeline_config
from .errors import ContactNotFoundError, ContactStoreError, RowSourceError
from .models import (
    DEFAULT_COLUMNS,
    Contact,
    ContactRelationship,
    DuplicateGroup,
    Email,
    Phone,
    RawRow,
)
from .normalization import (
    analyze_phone_number,
    cell_to_text,
    classify_phone,
    extract_emails,
    is_empty_value,
    parse_phone_candidates,
)

__all__ = [
    "Contact",
    "ContactNotFoundError",
    "ContactRelationship",
    "ContactStoreError",
    "DEFAULT_COLUMNS",
    "DuplicateGroup",
    "Email",
    "Phone",
    "PipelineConfig",
    "RawRow",
    "RowSourceError",
    "analyze_phone_number",
    "cell_to_text",
    "classify_phone",
    "deterministic_uuid",
    "ensure_contact",
    "extract_emails",
    "is_empty_value",
    "load_config",
    "parse_phone_candidates",
    "resolve_columns",
]


def deterministic_uuid(namespace_str: str) -> str:
    namespace = uuid.UUID("12345678-1234-5678-1234-567812345678")
    return str(uuid.uuid5(namespace, namespace_str))


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)


def resolve_columns(overrides: Optional[Dict[str, int]] = None) -> Dict[str, int]:
    columns = dict(DEFAULT_COLUMNS)
    for key, index in (overrides or {}).items():
        if key not in DEFAULT_COLUMNS:
            raise ValueError(f"Unknown column name in column map: {key!r}")
        columns[key] = int(index)
    return columns


def ensure_contact(obj: Any) -> Contact:
    if isinstance(obj, Contact):
        return obj
    if isinstance(obj, dict):
        return Contact.from_mapping(obj)
    raise TypeError(f"Unsupported contact payload type: {type(obj)!r}")
