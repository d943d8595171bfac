"""
Document Number Generator - ``<PREFIX>-<YYYY>-<NNNNNN>`` numbers.

Quotes are ``ANG-2024-000001``, invoices ``RG-2024-000001`` and cost records
``PK-2024-000001``.  The sequence part comes from an atomic counter keyed by
document type and year (``SequenceSource.next_sequence``), so two concurrent
callers never receive the same number.  Counting the documents already
stored is never used.

Usage:
    from billing_engines.numbering import DocumentNumberGenerator
    from billing_kernel.services.document_store import InMemoryDocumentStore

    generator = DocumentNumberGenerator(InMemoryDocumentStore())
    generator.next_number(DocumentType.INVOICE, 2024)  # 'RG-2024-000001'
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import ExhaustedSequenceError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.document_store import SequenceSource

logger = get_logger("engines.numbering")

MAX_SEQUENCE = 999_999

DEFAULT_PREFIXES: Mapping[DocumentType, str] = {
    DocumentType.QUOTE: "ANG",
    DocumentType.INVOICE: "RG",
    DocumentType.COST: "PK",
}

_NUMBER_PATTERN = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<year>\d{4})-(?P<sequence>\d{6})$")


def format_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year:04d}-{sequence:06d}"


def parse_number(number: str) -> tuple[str, int, int]:
    """Split a document number into ``(prefix, year, sequence)``.

    Raises:
        ValueError: if the string is not a document number.
    """
    match = _NUMBER_PATTERN.match(number)
    if match is None:
        raise ValueError(f"Not a document number: {number!r}")
    return match["prefix"], int(match["year"]), int(match["sequence"])


class DocumentNumberGenerator:
    """Issues the next number for a document type and year."""

    def __init__(
        self,
        source: SequenceSource,
        prefixes: Mapping[DocumentType, str] | None = None,
    ):
        self._source = source
        self._prefixes = dict(DEFAULT_PREFIXES)
        if prefixes:
            self._prefixes.update({DocumentType(k): v for k, v in prefixes.items()})

    def prefix_for(self, document_type: DocumentType) -> str:
        return self._prefixes[DocumentType(document_type)]

    def next_number(self, document_type: DocumentType, year: int) -> str:
        """
        Allocate and format the next number.

        Raises:
            ExhaustedSequenceError: the counter for (type, year) passed 999999.
        """
        document_type = DocumentType(document_type)
        if not 1 <= year <= 9999:
            raise ValueError(f"Year out of range for document numbers: {year}")

        sequence = self._source.next_sequence(document_type, year)
        if sequence > MAX_SEQUENCE:
            logger.error(
                "document_sequence_exhausted",
                extra={
                    "document_type": document_type.value,
                    "year": year,
                    "sequence": sequence,
                },
            )
            raise ExhaustedSequenceError(document_type.value, year, sequence, MAX_SEQUENCE)

        number = format_number(self.prefix_for(document_type), year, sequence)
        LogContext.set(document_number=number)
        logger.info(
            "document_number_assigned",
            extra={"document_type": document_type.value, "number": number},
        )
        return number
