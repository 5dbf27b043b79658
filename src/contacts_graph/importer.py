from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .assembler import RowParseResult, parse_row
from .config_loader import PipelineConfig
from .duplicates import detect_duplicates
from .errors import ContactStoreError, RowSourceError
from .models import Contact, ContactRelationship, RawRow
from .normalization import count_valid
from .store import ContactStore

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"


@dataclass
class ImportSettings:
    batch_size: int = 100
    max_workers: int = 4
    columns: Optional[Mapping[str, int]] = None
    check_deliverability: bool = False
    import_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "ImportSettings":
        return cls(
            batch_size=config.importing.batch_size,
            max_workers=config.importing.max_workers,
            columns=config.columns or None,
            check_deliverability=config.validation.email_check_deliverability,
        )


@dataclass(frozen=True)
class RowSkip:
    row_index: int
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row_index": self.row_index, "reason": self.reason}


@dataclass(frozen=True)
class RowError:
    row_index: int
    contact_name: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "contact_name": self.contact_name,
            "message": self.message,
        }


@dataclass
class ImportReport:
    import_id: str
    total_rows: int = 0
    succeeded_rows: int = 0
    skipped: List[RowSkip] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    main_contacts_created: int = 0
    related_contacts_created: int = 0
    relationships_created: int = 0
    statistics: Dict[str, Any] = field(default_factory=dict)
    processing_seconds: float = 0.0

    @property
    def failed_rows(self) -> int:
        return len({error.row_index for error in self.errors})

    @property
    def status(self) -> str:
        if self.succeeded_rows == 0:
            return STATUS_FAILED
        if self.errors:
            return STATUS_PARTIAL
        return STATUS_COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "import_id": self.import_id,
            "status": self.status,
            "total_rows": self.total_rows,
            "succeeded_rows": self.succeeded_rows,
            "skipped_rows": len(self.skipped),
            "failed_rows": self.failed_rows,
            "main_contacts_created": self.main_contacts_created,
            "related_contacts_created": self.related_contacts_created,
            "relationships_created": self.relationships_created,
            "processing_seconds": round(self.processing_seconds, 3),
            "statistics": dict(self.statistics),
            "skipped": [skip.to_dict() for skip in self.skipped],
            "errors": [error.to_dict() for error in self.errors],
        }


def _parse_all(
    rows: List[RawRow], settings: ImportSettings, import_id: str
) -> List[Optional[RowParseResult]]:
    def parse(index: int, row: RawRow) -> Optional[RowParseResult]:
        return parse_row(
            row,
            columns=settings.columns,
            row_key=f"{import_id}:{index}",
            check_deliverability=settings.check_deliverability,
        )

    with ThreadPoolExecutor(max_workers=max(1, settings.max_workers)) as pool:
        return list(pool.map(parse, range(len(rows)), rows))


def summarize(results: Iterable[RowParseResult]) -> Dict[str, Any]:
    contacts: List[Contact] = []
    dropped_labels = 0
    for result in results:
        contacts.extend(result.contacts)
        dropped_labels += len(result.dropped_labels)
    phones = [phone for contact in contacts for phone in contact.phones]
    emails = [email for contact in contacts for email in contact.emails]
    valid_phones, invalid_phones = count_valid(phones)
    valid_emails, invalid_emails = count_valid(emails)
    category_counts: Dict[str, int] = {}
    for contact in contacts:
        if contact.category:
            category_counts[contact.category] = category_counts.get(contact.category, 0) + 1
    return {
        "main_contacts": sum(1 for contact in contacts if contact.is_main_contact),
        "related_contacts": sum(1 for contact in contacts if not contact.is_main_contact),
        "relationships": sum(
            len(contact.relationships) for contact in contacts if not contact.is_main_contact
        ),
        "total_phones": len(phones),
        "valid_phones": valid_phones,
        "invalid_phones": invalid_phones,
        "total_emails": len(emails),
        "valid_emails": valid_emails,
        "invalid_emails": invalid_emails,
        "dropped_labels": dropped_labels,
        "category_counts": category_counts,
    }


def _persist_batch(
    batch: List[Tuple[int, RowParseResult]], store: ContactStore, report: ImportReport
) -> None:
    main_ids: Dict[int, str] = {}
    related_ids: Dict[int, Dict[str, str]] = {}

    def fail(row_index: int, name: str, exc: Exception) -> None:
        logger.warning("Row %d (%s) failed to save: %s", row_index, name, exc)
        report.errors.append(RowError(row_index=row_index, contact_name=name, message=str(exc)))
        main_ids.pop(row_index, None)

    for row_index, result in batch:
        main = result.main_contact
        try:
            main_ids[row_index] = store.create(main.replace(relationships=[]))
            report.main_contacts_created += 1
        except ContactStoreError as exc:
            fail(row_index, main.name, exc)

    for row_index, result in batch:
        if row_index not in main_ids:
            continue
        id_map: Dict[str, str] = {}
        for related in result.related_contacts:
            try:
                id_map[related.id] = store.create(
                    related.replace(parent_contact_id=main_ids[row_index], relationships=[])
                )
                report.related_contacts_created += 1
            except ContactStoreError as exc:
                fail(row_index, related.name, exc)
                break
        else:
            related_ids[row_index] = id_map

    for row_index, result in batch:
        if row_index not in main_ids:
            continue
        main_id = main_ids[row_index]
        id_map = related_ids[row_index]
        edges: List[ContactRelationship] = [
            replace(edge, contact_id=main_id, related_contact_id=id_map[edge.related_contact_id])
            for edge in result.main_contact.relationships
            if edge.related_contact_id in id_map
        ]
        try:
            if edges:
                store.update(main_id, relationships=edges)
            for edge in edges:
                store.update(edge.related_contact_id, relationships=[edge])
            report.relationships_created += len(edges)
            report.succeeded_rows += 1
        except ContactStoreError as exc:
            fail(row_index, result.main_contact.name, exc)


def import_rows(
    rows: Iterable[RawRow],
    store: ContactStore,
    settings: Optional[ImportSettings] = None,
) -> ImportReport:
    """
    Parse ``rows`` and persist the resulting contacts into ``store``.

    Rows are parsed in a bounded worker pool. Persistence runs batch by
    batch: main contacts first, then related contacts pointing at the ids
    the store assigned, then relationship edges. A store failure is recorded
    against its row and the import moves on. An empty row source aborts the
    import with :class:`RowSourceError`.
    """
    settings = settings or ImportSettings()
    rows = list(rows)
    if not rows:
        raise RowSourceError("no rows to import")
    if settings.batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {settings.batch_size}")

    started = time.monotonic()
    import_id = settings.import_id or str(uuid.uuid4())
    report = ImportReport(import_id=import_id, total_rows=len(rows))

    parsed: List[Tuple[int, RowParseResult]] = []
    for index, result in enumerate(_parse_all(rows, settings, import_id)):
        if result is None:
            report.skipped.append(RowSkip(row_index=index, reason="missing name"))
        else:
            parsed.append((index, result))
    report.statistics = summarize(result for _, result in parsed)
    logger.info(
        "Parsed %d row(s): %d to save, %d skipped",
        len(rows),
        len(parsed),
        len(report.skipped),
    )

    total_batches = (len(parsed) + settings.batch_size - 1) // settings.batch_size
    for batch_number, start in enumerate(range(0, len(parsed), settings.batch_size), 1):
        batch = parsed[start : start + settings.batch_size]
        errors_before = len(report.errors)
        _persist_batch(batch, store, report)
        logger.info(
            "Batch %d/%d saved: %d row(s), %d error(s)",
            batch_number,
            total_batches,
            len(batch),
            len(report.errors) - errors_before,
        )

    report.processing_seconds = time.monotonic() - started
    logger.info(
        "Import %s %s: %d of %d row(s) saved",
        import_id,
        report.status,
        report.succeeded_rows,
        report.total_rows,
    )
    return report


def refresh_duplicate_groups(store: ContactStore) -> int:
    """Recompute phone-based duplicate groups over the store; return how many contacts changed."""
    snapshot = store.all()
    changed = 0
    for before, after in zip(snapshot, detect_duplicates(snapshot)):
        if before.duplicate_group != after.duplicate_group:
            store.update(before.id, duplicate_group=after.duplicate_group)
            changed += 1
    logger.info("Duplicate pass updated %d contact(s)", changed)
    return changed


__all__ = [
    "ImportReport",
    "ImportSettings",
    "RowError",
    "RowSkip",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_PARTIAL",
    "import_rows",
    "refresh_duplicate_groups",
    "summarize",
]
