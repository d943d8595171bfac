"""
Billing Modules.

Document lifecycles built on the billing kernel and engines.  Each module
contains:
- Domain models (frozen dataclasses)
- Workflow (state machine)
- Engine (pure lifecycle operations)
- Codec (persistence payload and wire form)
- Service (unit of work around the engine)

Modules:
- Quote: Angebote, from draft to acceptance, rejection or expiry
- Invoice: Rechnungen, payments, settlement and reminders
- Cost: Projektkosten, threshold approval and payment
- Dunning: periodic reminder escalation
- Reporting: read-only period summary
"""

from billing_modules import cost, dunning, invoice, quote, reporting
from billing_modules.registry import build_sql_store, default_codecs

__all__ = [
    "cost",
    "dunning",
    "invoice",
    "quote",
    "reporting",
    "build_sql_store",
    "default_codecs",
]
