"""
Concurrent numbering and optimistic locking on the in-memory store.

Many threads create documents through their own service instances sharing
one store; every document must get a distinct, gap-free number.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from billing_engines.numbering import parse_number
from billing_kernel.exceptions import VersionConflictError
from billing_modules.invoice.service import InvoiceService
from billing_modules.quote.service import QuoteService
from tests.factories import moving_job_lines

WORKERS = 8
PER_WORKER = 25


def test_parallel_invoice_numbers_are_unique(memory_store, clock, config, customer_id):
    def create_many(_):
        service = InvoiceService(memory_store, clock=clock, config=config)
        return [
            service.create(customer_id=customer_id, lines=moving_job_lines()).number
            for _ in range(PER_WORKER)
        ]

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        numbers = [n for batch in pool.map(create_many, range(WORKERS)) for n in batch]

    assert len(numbers) == len(set(numbers)) == WORKERS * PER_WORKER
    sequences = sorted(parse_number(n)[2] for n in numbers)
    assert sequences == list(range(1, WORKERS * PER_WORKER + 1))


def test_types_do_not_share_counters(memory_store, clock, config, customer_id):
    invoices = InvoiceService(memory_store, clock=clock, config=config)
    quotes = QuoteService(memory_store, clock=clock, config=config)

    def create_pair(_):
        return (
            invoices.create(customer_id=customer_id, lines=moving_job_lines()).number,
            quotes.create(customer_id=customer_id, lines=moving_job_lines()).number,
        )

    with ThreadPoolExecutor(max_workers=4) as pool:
        pairs = list(pool.map(create_pair, range(20)))

    assert sorted(p[0] for p in pairs)[-1] == "RG-2024-000020"
    assert sorted(p[1] for p in pairs)[-1] == "ANG-2024-000020"


def test_parallel_payments_all_recorded(memory_store, clock, config, customer_id):
    service = InvoiceService(memory_store, clock=clock, config=config)
    invoice = service.create(customer_id=customer_id, lines=moving_job_lines())
    service.send(invoice.id)

    def pay(_):
        # Each call reloads inside its unit of work, so writers serialize
        service.record_payment(invoice.id, amount=Decimal("10.00"))

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(pool.map(pay, range(WORKERS)))

    stored = service.get(invoice.id)
    assert len(stored.payments) == WORKERS
    assert stored.paid_amount == Decimal("80.00")


def test_stale_writer_conflicts(memory_store, clock, config, customer_id):
    service = InvoiceService(memory_store, clock=clock, config=config)
    invoice = service.create(customer_id=customer_id, lines=moving_job_lines())
    stale = service.get(invoice.id)
    service.send(invoice.id)

    with pytest.raises(VersionConflictError) as exc_info:
        with memory_store.unit_of_work():
            memory_store.save(stale)
    assert exc_info.value.expected_version == 1
    assert exc_info.value.actual_version == 2
