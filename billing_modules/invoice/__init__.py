"""Customer invoices (Rechnungen): payments, settlement and dunning."""

from billing_modules.invoice.codec import InvoiceCodec
from billing_modules.invoice.engine import InvoiceEngine
from billing_modules.invoice.models import (
    Delivery,
    DeliveryChannel,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    Reminder,
    ServicePeriod,
    Settlement,
)
from billing_modules.invoice.service import InvoiceService
from billing_modules.invoice.workflows import INVOICE_WORKFLOW

__all__ = [
    "Delivery",
    "DeliveryChannel",
    "INVOICE_WORKFLOW",
    "Invoice",
    "InvoiceCodec",
    "InvoiceEngine",
    "InvoiceKind",
    "InvoiceService",
    "InvoiceStatus",
    "Payment",
    "PaymentMethod",
    "Reminder",
    "ServicePeriod",
    "Settlement",
]
