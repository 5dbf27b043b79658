import math

import pytest

from contacts_graph.normalization import (
    analyze_phone_number,
    cell_to_text,
    classify_phone,
    count_valid,
    determine_phone_type,
    extract_emails,
    is_empty_value,
    is_valid_email,
    parse_phone_candidates,
)


def test_cell_to_text_handles_spreadsheet_values():
    assert cell_to_text(None) == ""
    assert cell_to_text(math.nan) == ""
    assert cell_to_text(9876543210.0) == "9876543210"
    assert cell_to_text("  Mumbai ") == "Mumbai"


@pytest.mark.parametrize("value", ["", "-", "N/A", "nil", "xxxx", "###", "TBD", None])
def test_is_empty_value_placeholders(value):
    assert is_empty_value(value) is True


def test_is_empty_value_keeps_real_text():
    assert is_empty_value("9876543210") is False
    assert is_empty_value("Wife") is False


def test_parse_phone_candidates_splits_and_labels():
    candidates = parse_phone_candidates("9876543210, 9123456780 (Wife); Son - 9988776655", 0)
    assert [(c.raw_text, c.label) for c in candidates] == [
        ("9876543210", ""),
        ("9123456780", "Wife"),
        ("9988776655", "Son"),
    ]
    assert all(c.source_field_index == 0 for c in candidates)


def test_parse_phone_candidates_colon_label():
    candidates = parse_phone_candidates("Office: 9876543210", 4)
    assert candidates[0].raw_text == "9876543210"
    assert candidates[0].label == "Office"
    assert candidates[0].source_field_index == 4


def test_parse_phone_candidates_short_annotation_stays_bare():
    candidates = parse_phone_candidates("2345 (ext)", 5)
    assert len(candidates) == 1
    assert candidates[0].label == ""


def test_parse_phone_candidates_empty_field():
    assert parse_phone_candidates("", 0) == []
    assert parse_phone_candidates("N/A", 0) == []
    assert parse_phone_candidates("-, ;", 1) == []


def test_analyze_phone_number_indian_shapes():
    for raw in ("9876543210", "+91 98765 43210", "919876543210", "98765-43210"):
        result = analyze_phone_number(raw)
        assert result is not None
        assert result.formatted == "+91 98765 43210"
        assert result.country == "India"
        assert result.region == "IN"
        assert result.is_valid is True


def test_analyze_phone_number_north_american():
    result = analyze_phone_number("(415) 555-2671")
    assert result.formatted == "+1 (415) 555-2671"
    assert result.region == "US"
    assert analyze_phone_number("1-415-555-2671").formatted == "+1 (415) 555-2671"


def test_analyze_phone_number_local_numbers_kept_verbatim():
    result = analyze_phone_number("022 2345 6789")
    assert result.formatted == "022 2345 6789"
    assert result.country == "Unknown"
    assert result.region == "XX"
    assert result.is_valid is True

    short_local = analyze_phone_number("2345678")
    assert short_local.formatted == "2345678"
    assert short_local.is_valid is False


def test_analyze_phone_number_unknown_and_discarded():
    unknown = analyze_phone_number("44 20 7946 0958 12")
    assert unknown.region == "XX"
    assert unknown.is_valid is True
    assert analyze_phone_number("12345") is None
    assert analyze_phone_number("") is None
    assert analyze_phone_number("call me") is None


def test_determine_phone_type_label_then_slot():
    assert determine_phone_type(0) == "mobile"
    assert determine_phone_type(3) == "mobile"
    assert determine_phone_type(4) == "office"
    assert determine_phone_type(5) == "residence"
    assert determine_phone_type(9) == "other"
    assert determine_phone_type(0, "Work") == "office"
    assert determine_phone_type(4, "home fax") == "residence"
    assert determine_phone_type(5, "Fax") == "fax"


def test_classify_phone_builds_phone():
    phone = classify_phone("9876543210", phone_type="mobile", phone_id="phone_3", is_primary=True)
    assert phone.id == "phone_3"
    assert phone.number == "+91 98765 43210"
    assert phone.type == "mobile"
    assert phone.is_primary is True
    assert phone.label is None
    assert classify_phone("123") is None


def test_extract_emails_dedupes_and_marks_primary():
    emails = extract_emails("Raj@Gmail.com; raj@gmail.com, office@company.in bad@")
    assert [email.address for email in emails] == ["raj@gmail.com", "office@company.in"]
    assert [email.id for email in emails] == ["email_0", "email_1"]
    assert emails[0].is_primary is True
    assert emails[1].is_primary is False
    assert all(email.is_valid for email in emails)


def test_extract_emails_empty():
    assert extract_emails("") == []
    assert extract_emails("no address here") == []


def test_is_valid_email():
    assert is_valid_email("someone@company.in") is True
    assert is_valid_email("someone@") is False
    assert is_valid_email("some one@company.in") is False


def test_count_valid():
    phones = [classify_phone("9876543210"), classify_phone("2345678")]
    assert count_valid(phones) == (1, 1)


@pytest.mark.parametrize("digits", ["1", "98", "987", "98765", "00000", "+91 1"])
def test_short_numbers_are_discarded(digits):
    assert classify_phone(digits) is None


@pytest.mark.parametrize("number", ["6000000000", "7123456789", "8899001122", "9999999999"])
def test_indian_mobiles_format(number):
    phone = classify_phone(number)
    assert phone.region == "IN"
    assert phone.is_valid is True
    assert phone.number == f"+91 {number[:5]} {number[5:]}"


def test_extract_emails_is_stable_on_clean_input():
    addresses = ["raj@gmail.com", "office@company.in", "meera.iyer@mail.co.in"]
    first = extract_emails(", ".join(addresses))
    assert [email.address for email in first] == addresses
    again = extract_emails("; ".join(email.address for email in first))
    assert again == first


@pytest.mark.parametrize(
    "raw, number",
    [("+91-98765-43210", "+91 98765 43210"), ("+1-415-555-2671", "+1 (415) 555-2671")],
)
def test_dial_prefix_stays_with_the_number(raw, number):
    candidates = parse_phone_candidates(raw, 0)
    assert [(c.raw_text, c.label) for c in candidates] == [(raw, "")]
    assert analyze_phone_number(candidates[0].raw_text).formatted == number
