from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Any, Callable, List, Optional, Pattern, Sequence, Tuple

import pandas as pd
from email_validator import EmailNotValidError, validate_email

from .models import Email, Phone, PhoneCandidate, PhoneClassification

logger = logging.getLogger(__name__)

EMPTY_VALUES = {
    "",
    "-",
    "null",
    "undefined",
    "n/a",
    "na",
    "nil",
    "0",
    "00",
    "none",
    "empty",
    "blank",
    "xxx",
    "###",
    "...",
    "tbc",
    "tbd",
    "pending",
}

REPEATED_CHAR_RE = re.compile(r"^(.)\1{2,}$")
PHONE_FIELD_SPLIT_RE = re.compile(r"[,;\n]")
PHONE_NOISE_RE = re.compile(r"[^\d+\-\s()]")
NON_DIGIT_RE = re.compile(r"\D")

# Tried in order; group 1 and group 2 are the two sides of the annotation.
LABEL_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^(.+?)\s*\(([^)]+)\)(.*)$"),
    re.compile(r"^([^:]+):\s*(.+)$"),
    re.compile(r"^(.+?)\s*-\s*(.+)$"),
)

MIN_PHONE_DIGITS = 6
MIN_LABELED_NUMBER_DIGITS = 10
DIAL_PREFIX_RE = re.compile(r"^\+?\d{1,3}$")

EMAIL_SCAN_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

PHONE_TYPE_KEYWORDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("office", "work", "business"), "office"),
    (("home", "house", "residence"), "residence"),
    (("fax",), "fax"),
    (("mobile", "cell"), "mobile"),
)


def _format_indian(match: "re.Match[str]", cleaned: str) -> PhoneClassification:
    number = match.group(1)
    return PhoneClassification(
        formatted=f"+91 {number[:5]} {number[5:]}",
        country="India",
        region="IN",
        is_valid=True,
    )


def _format_north_american(match: "re.Match[str]", cleaned: str) -> PhoneClassification:
    number = match.group(1)
    return PhoneClassification(
        formatted=f"+1 ({number[:3]}) {number[3:6]}-{number[6:]}",
        country="United States",
        region="US",
        is_valid=True,
    )


def _keep_local(match: "re.Match[str]", cleaned: str) -> PhoneClassification:
    digits = NON_DIGIT_RE.sub("", cleaned)
    return PhoneClassification(
        formatted=cleaned, country="Unknown", region="XX", is_valid=len(digits) >= 8
    )


def _keep_unknown(match: "re.Match[str]", cleaned: str) -> PhoneClassification:
    digits = NON_DIGIT_RE.sub("", cleaned)
    return PhoneClassification(
        formatted=cleaned, country="Unknown", region="XX", is_valid=len(digits) >= 10
    )


# Matched against the digits-only form, top to bottom; the first hit wins.
# Locally dialed numbers (leading 2 or 0) are kept verbatim so that they are
# never forced into a country shape.
PHONE_RULES: Tuple[Tuple[Pattern[str], Callable[["re.Match[str]", str], PhoneClassification]], ...] = (
    (re.compile(r"^[20]\d*$"), _keep_local),
    (re.compile(r"^(?:91|0)?([6-9]\d{9})$"), _format_indian),
    (re.compile(r"^1?([2-9]\d{2}[2-9]\d{2}\d{4})$"), _format_north_american),
    (re.compile(r"^\d+$"), _keep_unknown),
)


def cell_to_text(value: Any) -> str:
    """
    Render a spreadsheet cell as trimmed text.

    Whole floats (``9876543210.0`` as read from Excel) lose their ``.0`` so
    their digits survive intact.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def is_empty_value(value: Any) -> bool:
    text = cell_to_text(value).lower()
    if text in EMPTY_VALUES:
        return True
    if REPEATED_CHAR_RE.match(text):
        return True
    if re.fullmatch(r"x+", text) or re.fullmatch(r"#+", text):
        return True
    return False


def digits_only(value: str) -> str:
    return NON_DIGIT_RE.sub("", value or "")


def has_number_digits(text: str, minimum: int = MIN_LABELED_NUMBER_DIGITS) -> bool:
    return len(digits_only(text)) >= minimum


def _split_label(sub_value: str) -> Tuple[str, str]:
    for pattern in LABEL_PATTERNS:
        match = pattern.match(sub_value)
        if not match:
            continue
        left = match.group(1).strip()
        right = match.group(2).strip()
        if has_number_digits(left):
            return left, right
        if has_number_digits(right):
            # "+91-98765-43210": a leading country or trunk code belongs to the number.
            if DIAL_PREFIX_RE.match(left):
                return sub_value, ""
            return right, left
    return sub_value, ""


def parse_phone_candidates(value: Any, source_field_index: int) -> List[PhoneCandidate]:
    """
    Split one raw phone field into candidates.

    A field may hold several numbers separated by comma, semicolon or newline,
    and each may carry an annotation such as ``"98765 43210 (Wife)"``,
    ``"Office: 9876543210"`` or ``"Son - 9876543210"``. The side of the
    annotation with at least ten digits is the number; the other side becomes
    the candidate label. Annotations whose sides both fall short are kept as
    bare numbers.
    """
    if is_empty_value(value):
        return []
    text = cell_to_text(value)
    candidates: List[PhoneCandidate] = []
    for part in PHONE_FIELD_SPLIT_RE.split(text):
        part = part.strip()
        if is_empty_value(part):
            continue
        number, label = _split_label(part)
        candidates.append(
            PhoneCandidate(raw_text=number, source_field_index=source_field_index, label=label)
        )
    return candidates


def analyze_phone_number(raw: Any) -> Optional[PhoneClassification]:
    text = cell_to_text(raw)
    if not text:
        return None
    cleaned = PHONE_NOISE_RE.sub("", text).strip()
    digits = digits_only(cleaned)
    if len(digits) < MIN_PHONE_DIGITS:
        logger.debug("Discarded phone candidate with %d digit(s): %r", len(digits), text)
        return None
    for pattern, build in PHONE_RULES:
        match = pattern.match(digits)
        if match:
            return build(match, cleaned)
    return None


def determine_phone_type(field_index: int, label: str = "") -> str:
    lowered = (label or "").lower()
    for keywords, phone_type in PHONE_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return phone_type
    if field_index < 4:
        return "mobile"
    if field_index == 4:
        return "office"
    if field_index == 5:
        return "residence"
    return "other"


def classify_phone(
    raw: Any,
    phone_type: str = "other",
    phone_id: str = "phone_0",
    is_primary: bool = False,
    label: Optional[str] = None,
) -> Optional[Phone]:
    classification = analyze_phone_number(raw)
    if classification is None:
        return None
    return Phone(
        id=phone_id,
        number=classification.formatted,
        type=phone_type,
        is_primary=is_primary,
        label=label or None,
        country=classification.country,
        region=classification.region,
        is_valid=classification.is_valid,
    )


def is_valid_email(address: str, check_deliverability: bool = False) -> bool:
    candidate = (address or "").strip()
    if not EMAIL_RE.match(candidate):
        return False
    try:
        validate_email(candidate, check_deliverability=check_deliverability)
    except EmailNotValidError as exc:
        logger.debug("Email failed validation %s: %s", candidate, exc)
        return False
    return True


def extract_emails(value: Any, check_deliverability: bool = False) -> List[Email]:
    if is_empty_value(value):
        return []
    text = cell_to_text(value)
    found: "OrderedDict[str, None]" = OrderedDict()
    for match in EMAIL_SCAN_RE.findall(text):
        found.setdefault(match.strip().lower(), None)
    return [
        Email(
            id=f"email_{index}",
            address=address,
            is_primary=index == 0,
            is_valid=is_valid_email(address, check_deliverability=check_deliverability),
        )
        for index, address in enumerate(found)
    ]


def count_valid(values: Sequence[Any]) -> Tuple[int, int]:
    valid = sum(1 for value in values if getattr(value, "is_valid", None) is not False)
    return valid, len(values) - valid


__all__ = [
    "EMAIL_RE",
    "EMPTY_VALUES",
    "LABEL_PATTERNS",
    "PHONE_RULES",
    "analyze_phone_number",
    "cell_to_text",
    "classify_phone",
    "count_valid",
    "determine_phone_type",
    "digits_only",
    "extract_emails",
    "has_number_digits",
    "is_empty_value",
    "is_valid_email",
    "parse_phone_candidates",
]
