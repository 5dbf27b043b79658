import pytest

from contacts_graph.errors import ContactNotFoundError, ContactStoreError
from contacts_graph.models import Contact, ContactRelationship, Email
from contacts_graph.normalization import classify_phone
from contacts_graph.store import ContactFilters, InMemoryContactStore, Pagination


def _household(store):
    main_id = store.create(
        Contact(
            id="main-1",
            name="Rajesh Sharma",
            city="Mumbai",
            category="Family",
            phones=[classify_phone("9876543210")],
            emails=[Email(id="email_0", address="raj@gmail.com", is_primary=True)],
        )
    )
    edge = ContactRelationship(
        id="rel-1", contact_id=main_id, related_contact_id="rel-contact-1", relationship_type="spouse"
    )
    store.create(
        Contact(
            id="rel-contact-1",
            name="Sunita",
            is_main_contact=False,
            parent_contact_id=main_id,
            phones=[classify_phone("9123456780")],
            alternate_names=["Wife Sunita"],
            relationships=[edge],
        )
    )
    store.update(main_id, relationships=[edge])
    return main_id


def test_create_assigns_id_when_missing():
    store = InMemoryContactStore()
    contact_id = store.create(Contact(name="Meera Iyer"))
    assert contact_id
    assert store.find_by_id(contact_id).name == "Meera Iyer"
    assert len(store) == 1


def test_create_rejects_duplicate_id_and_bad_parent():
    store = InMemoryContactStore()
    main_id = _household(store)
    with pytest.raises(ContactStoreError):
        store.create(Contact(id=main_id, name="Again"))
    with pytest.raises(ContactStoreError):
        store.create(Contact(name="Orphan", is_main_contact=False, parent_contact_id="missing"))
    with pytest.raises(ContactStoreError):
        store.create(
            Contact(name="Grandchild", is_main_contact=False, parent_contact_id="rel-contact-1")
        )


def test_create_many_collects_errors():
    store = InMemoryContactStore()
    result = store.create_many(
        [
            Contact(id="a", name="Anil"),
            Contact(id="a", name="Anil again"),
            Contact(id="b", name="Bina"),
        ]
    )
    assert result.count == 2
    assert result.ids == ["a", "b"]
    assert len(result.errors) == 1
    assert "Anil again" in result.errors[0]


def test_update_changes_fields_and_rejects_unknown():
    store = InMemoryContactStore()
    main_id = _household(store)
    updated = store.update(main_id, duplicate_group="9876543210")
    assert updated.duplicate_group == "9876543210"
    assert store.find_by_id(main_id).duplicate_group == "9876543210"
    with pytest.raises(ContactStoreError):
        store.update(main_id, nickname="Raju")
    with pytest.raises(ContactStoreError):
        store.update(main_id, id="other")
    with pytest.raises(ContactNotFoundError) as excinfo:
        store.update("missing", name="x")
    assert excinfo.value.contact_id == "missing"


def test_delete_cascades_to_related_contacts():
    store = InMemoryContactStore()
    main_id = _household(store)
    store.create(Contact(id="other", name="Meera Iyer"))
    store.delete(main_id)
    assert store.find_by_id(main_id) is None
    assert store.find_by_id("rel-contact-1") is None
    assert [c.id for c in store.all()] == ["other"]
    with pytest.raises(ContactNotFoundError):
        store.delete(main_id)


def test_delete_related_strips_edges_from_main():
    store = InMemoryContactStore()
    main_id = _household(store)
    store.delete("rel-contact-1")
    assert store.find_by_id(main_id).relationships == []


def test_query_filters_and_sorts_by_name():
    store = InMemoryContactStore()
    _household(store)
    store.create(Contact(id="m2", name="anil kapoor"))

    everyone = store.query(ContactFilters(), Pagination(page=1, limit=10))
    assert [c.name for c in everyone.contacts] == ["anil kapoor", "Rajesh Sharma", "Sunita"]
    assert everyone.total == 3
    assert everyone.total_pages == 1

    mains = store.query(ContactFilters(filter="main"), Pagination())
    assert [c.name for c in mains.contacts] == ["anil kapoor", "Rajesh Sharma"]
    related = store.query(ContactFilters(filter="related"), Pagination())
    assert [c.name for c in related.contacts] == ["Sunita"]

    second = store.query(ContactFilters(), Pagination(page=2, limit=2))
    assert [c.name for c in second.contacts] == ["Sunita"]
    assert second.total_pages == 2
    assert second.has_next_page is False


@pytest.mark.parametrize(
    "term, expected",
    [
        ("mumbai", ["Rajesh Sharma"]),
        ("98765 43210", ["Rajesh Sharma"]),
        ("raj@gmail", ["Rajesh Sharma"]),
        ("wife sunita", ["Sunita"]),
        ("family", ["Rajesh Sharma"]),
        ("nobody", []),
    ],
)
def test_query_search(term, expected):
    store = InMemoryContactStore()
    _household(store)
    page = store.query(ContactFilters(search=term), Pagination())
    assert [c.name for c in page.contacts] == expected


def test_query_duplicates_filter():
    store = InMemoryContactStore()
    _household(store)
    store.create(Contact(id="dup", name="Raj", phones=[classify_phone("+91 98765 43210")]))
    page = store.query(ContactFilters(filter="duplicates"), Pagination(limit=5))
    assert [c.name for c in page.contacts] == ["Raj", "Rajesh Sharma"]
    assert page.total == 2


def test_contact_filters_rejects_unknown_filter():
    with pytest.raises(ValueError):
        ContactFilters(filter="archived")


def test_query_duplicates_with_search_keeps_partners_outside_the_match():
    store = InMemoryContactStore()
    store.create(Contact(id="a", name="Anil", phones=[classify_phone("9876543210")]))
    store.create(Contact(id="b", name="Bina", phones=[classify_phone("+91 98765 43210")]))
    store.create(Contact(id="c", name="Anita", phones=[classify_phone("9811111111")]))

    page = store.query(ContactFilters(filter="duplicates", search="Ani"), Pagination())
    assert [c.name for c in page.contacts] == ["Anil"]
    assert page.total == 1
