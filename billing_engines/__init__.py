"""
Module: billing_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: money and
    tax totals, and document numbering.

Architecture position:
    Engines -- calculation layer.  May import billing_kernel only.
    MUST NOT import billing_modules.

Invariants enforced:
    - Engines never call ``datetime.now()`` or ``date.today()``; dates come
      in as parameters.
    - Decimal-only arithmetic; floats are converted through ``str``.
"""

from billing_engines.calculator import (
    DocumentDiscount,
    DocumentTotals,
    LineTotal,
    TaxGroup,
    aggregate_by_tax_rate,
    apply_document_discount,
    calculate_document_totals,
    gross_from_net,
    line_total,
    price_line,
    price_lines,
    validate_tax_rate,
)
from billing_engines.numbering import (
    DEFAULT_PREFIXES,
    MAX_SEQUENCE,
    DocumentNumberGenerator,
    format_number,
    parse_number,
)
from billing_engines.tracer import traced_engine

__all__ = [
    "DocumentDiscount",
    "DocumentTotals",
    "LineTotal",
    "TaxGroup",
    "aggregate_by_tax_rate",
    "apply_document_discount",
    "calculate_document_totals",
    "gross_from_net",
    "line_total",
    "price_line",
    "price_lines",
    "validate_tax_rate",
    "DEFAULT_PREFIXES",
    "MAX_SEQUENCE",
    "DocumentNumberGenerator",
    "format_number",
    "parse_number",
    "traced_engine",
]
