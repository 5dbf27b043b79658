import pytest

from contacts_graph.errors import ContactStoreError, RowSourceError
from contacts_graph.importer import (
    ImportSettings,
    import_rows,
    refresh_duplicate_groups,
)
from contacts_graph.models import DEFAULT_COLUMNS
from contacts_graph.store import ContactFilters, InMemoryContactStore, Pagination


def _row(**cells):
    row = [""] * (max(DEFAULT_COLUMNS.values()) + 1)
    for key, value in cells.items():
        row[DEFAULT_COLUMNS[key]] = value
    return row


class RejectingStore(InMemoryContactStore):
    """Refuses to save contacts with the given names."""

    def __init__(self, *names):
        super().__init__()
        self.names = set(names)

    def create(self, contact):
        if contact.name in self.names:
            raise ContactStoreError(f"refused {contact.name}")
        return super().create(contact)


ROWS = [
    _row(
        name="Rajesh Sharma",
        city="Mumbai",
        category="Family",
        mobile1="9876543210, 9123456780 (Wife)",
        emails="raj@gmail.com",
    ),
    _row(name="", mobile1="9811111111"),
    _row(name="Meera Iyer", city="Chennai", mobile1="+91 98765 43210", mobile2="12"),
]


def test_import_rows_persists_household_graph():
    store = InMemoryContactStore()
    report = import_rows(ROWS, store, ImportSettings(batch_size=2, max_workers=2))

    assert report.status == "completed"
    assert report.total_rows == 3
    assert report.succeeded_rows == 2
    assert [skip.row_index for skip in report.skipped] == [1]
    assert report.errors == []
    assert report.main_contacts_created == 2
    assert report.related_contacts_created == 1
    assert report.relationships_created == 1

    contacts = {contact.name: contact for contact in store.all()}
    assert set(contacts) == {"Rajesh Sharma", "Wife", "Meera Iyer"}
    main = contacts["Rajesh Sharma"]
    wife = contacts["Wife"]
    assert wife.parent_contact_id == main.id
    assert len(main.relationships) == 1
    assert main.relationships[0].related_contact_id == wife.id
    assert main.relationships[0].relationship_type == "spouse"
    assert wife.relationships == main.relationships


def test_import_rows_statistics():
    report = import_rows(ROWS, InMemoryContactStore())
    stats = report.statistics
    assert stats["main_contacts"] == 2
    assert stats["related_contacts"] == 1
    assert stats["relationships"] == 1
    assert stats["total_phones"] == 3
    assert stats["valid_phones"] == 3
    assert stats["total_emails"] == 1
    assert stats["category_counts"] == {"Family": 1}

    payload = report.to_dict()
    assert payload["status"] == "completed"
    assert payload["skipped_rows"] == 1
    assert payload["skipped"] == [{"row_index": 1, "reason": "missing name"}]


def test_import_rows_records_store_errors_and_continues():
    store = RejectingStore("Meera Iyer")
    report = import_rows(ROWS, store, ImportSettings(batch_size=1))

    assert report.status == "partial"
    assert report.succeeded_rows == 1
    assert report.failed_rows == 1
    assert report.errors[0].row_index == 2
    assert report.errors[0].contact_name == "Meera Iyer"
    assert "refused" in report.errors[0].message
    assert sorted(c.name for c in store.all()) == ["Rajesh Sharma", "Wife"]


def test_import_rows_related_failure_fails_the_row():
    store = RejectingStore("Wife")
    report = import_rows(ROWS, store)
    assert report.status == "partial"
    assert [error.contact_name for error in report.errors] == ["Wife"]
    assert report.succeeded_rows == 1


def test_import_rows_failed_when_nothing_saved():
    store = RejectingStore("Rajesh Sharma", "Meera Iyer")
    report = import_rows(ROWS, store)
    assert report.status == "failed"
    assert report.succeeded_rows == 0


def test_import_rows_only_blank_names_is_failed():
    report = import_rows([_row(name="")], InMemoryContactStore())
    assert report.status == "failed"
    assert len(report.skipped) == 1


def test_import_rows_rejects_empty_source():
    with pytest.raises(RowSourceError):
        import_rows([], InMemoryContactStore())


def test_import_rows_same_import_id_collides():
    store = InMemoryContactStore()
    settings = ImportSettings(import_id="fixed")
    assert import_rows(ROWS, store, settings).status == "completed"
    again = import_rows(ROWS, store, settings)
    assert again.status == "failed"
    assert len(store) == 3


def test_refresh_duplicate_groups_writes_back_changes():
    store = InMemoryContactStore()
    import_rows(ROWS, store)
    changed = refresh_duplicate_groups(store)
    assert changed == 2
    groups = {contact.name: contact.duplicate_group for contact in store.all()}
    assert groups == {
        "Rajesh Sharma": "9876543210",
        "Meera Iyer": "9876543210",
        "Wife": None,
    }
    assert refresh_duplicate_groups(store) == 0


def test_refresh_duplicate_groups_clears_group_after_partner_deleted():
    store = InMemoryContactStore()
    import_rows(ROWS, store)
    refresh_duplicate_groups(store)
    meera = next(c for c in store.all() if c.name == "Meera Iyer")
    store.delete(meera.id)

    assert refresh_duplicate_groups(store) == 1
    rajesh = next(c for c in store.all() if c.name == "Rajesh Sharma")
    assert rajesh.duplicate_group is None
    page = store.query(ContactFilters(filter="duplicates"), Pagination())
    assert page.contacts == []
