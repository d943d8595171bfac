"""
DocumentStore contract tests, run against the in-memory and SQL stores.

Covers optimistic versioning, number immutability and uniqueness, unit of
work rollback and status filtering.
"""

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidDocumentError,
    VersionConflictError,
)
from billing_modules.invoice.engine import InvoiceEngine
from billing_modules.invoice.models import InvoiceStatus
from tests.factories import ISSUE_DATE, moving_job_lines

AT = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_invoice(config, customer_id):
    engine = InvoiceEngine(config)

    def _make(number=None):
        invoice = engine.create(
            invoice_id=uuid4(),
            customer_id=customer_id,
            issue_date=ISSUE_DATE,
            lines=moving_job_lines(),
            at=AT,
        )
        return replace(invoice, number=number)

    return _make


def _save(store, document):
    with store.unit_of_work():
        return store.save(document)


class TestVersioning:
    def test_insert_sets_version_one(self, store, make_invoice):
        saved = _save(store, make_invoice("RG-2024-000001"))
        assert saved.version == 1
        assert store.load(DocumentType.INVOICE, saved.id) == saved

    def test_update_increments(self, store, make_invoice):
        saved = _save(store, make_invoice("RG-2024-000001"))
        updated = _save(store, replace(saved, notes="call first"))
        assert updated.version == 2
        assert store.load(DocumentType.INVOICE, saved.id).notes == "call first"

    def test_stale_update_conflicts(self, store, make_invoice):
        saved = _save(store, make_invoice("RG-2024-000001"))
        _save(store, replace(saved, notes="first writer"))
        with pytest.raises(VersionConflictError) as exc_info:
            _save(store, replace(saved, notes="second writer"))
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert store.load(DocumentType.INVOICE, saved.id).notes == "first writer"

    def test_duplicate_insert_conflicts(self, store, make_invoice):
        invoice = make_invoice("RG-2024-000001")
        _save(store, invoice)
        with pytest.raises(VersionConflictError):
            _save(store, invoice)

    def test_load_missing(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.load(DocumentType.INVOICE, uuid4())


class TestUnitOfWork:
    def test_rollback_discards_writes(self, store, make_invoice):
        invoice = make_invoice("RG-2024-000001")
        with pytest.raises(RuntimeError):
            with store.unit_of_work():
                store.save(invoice)
                raise RuntimeError("abort")
        with pytest.raises(DocumentNotFoundError):
            store.load(DocumentType.INVOICE, invoice.id)

    def test_nested_units_join_outer(self, store, make_invoice):
        first, second = make_invoice("RG-2024-000001"), make_invoice("RG-2024-000002")
        with pytest.raises(RuntimeError):
            with store.unit_of_work():
                with store.unit_of_work():
                    store.save(first)
                store.save(second)
                raise RuntimeError("abort")
        assert store.find(DocumentType.INVOICE) == ()


class TestFind:
    def test_filter_by_status(self, store, make_invoice):
        draft = _save(store, make_invoice("RG-2024-000001"))
        sent = _save(store, replace(make_invoice("RG-2024-000002"), status=InvoiceStatus.SENT))
        assert store.find(DocumentType.INVOICE, [InvoiceStatus.SENT]) == (sent,)
        assert store.find(DocumentType.INVOICE, ["Draft"]) == (draft,)
        assert store.find(DocumentType.QUOTE) == ()

    def test_ordered_by_number(self, store, make_invoice):
        second = _save(store, make_invoice("RG-2024-000002"))
        first = _save(store, make_invoice("RG-2024-000001"))
        assert store.find(DocumentType.INVOICE) == (first, second)


def test_memory_store_number_immutable(memory_store, make_invoice):
    saved = _save(memory_store, make_invoice("RG-2024-000001"))
    with pytest.raises(InvalidDocumentError):
        _save(memory_store, replace(saved, number="RG-2024-000009"))


def test_memory_store_number_unique(memory_store, make_invoice):
    _save(memory_store, make_invoice("RG-2024-000001"))
    with pytest.raises(InvalidDocumentError):
        _save(memory_store, make_invoice("RG-2024-000001"))


def test_sql_store_number_unique(sql_store, make_invoice):
    _save(sql_store, make_invoice("RG-2024-000001"))
    with pytest.raises(VersionConflictError):
        _save(sql_store, make_invoice("RG-2024-000001"))
