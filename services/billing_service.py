import copy
import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.config import INVOICES_KEY, SAVED_INSURERS_KEY
from core.helpers import matches_search, new_record_id
from core.local_storage import LocalStorage
from core.time_utils import now_utc, format_date, parse_display_date
from models.invoice import Invoice, STATUS_CANCELLED, STATUS_FREE, STATUS_PAID
from models.patient import NO_VALUE, Insurance
from services.export_service import rows_to_csv

logger = logging.getLogger(__name__)

DEFAULT_INSURERS = ["CNOPS", "CNSS", "RMA", "SAHAM", "AXA"]

# (key, label) pairs offered in the export dialog
EXPORT_COLUMNS = [
    ("patient_number", "Patient No."),
    ("patient", "Patient"),
    ("amount", "Amount"),
    ("status", "Status"),
    ("payment_type", "Payment type"),
    ("insurance", "Insurance"),
    ("last_consultation", "Last consultation"),
]


def parse_amount(value) -> float:
    """Amounts are typed as text with either a comma or a dot, e.g. '850,00'."""
    text = str(value or "0").strip().replace(" ", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return 0.0


def format_amount(value: float) -> str:
    return f"{value:.2f}".replace(".", ",")


class InvoiceLedger:
    """Billing line items and the list of known insurers."""

    def __init__(self, storage: LocalStorage | None = None, clock=now_utc):
        self._storage = storage or LocalStorage()
        self._clock = clock
        self._invoices: list[Invoice] = []
        self._insurers: list[str] = list(DEFAULT_INSURERS)
        self._load()

    @property
    def invoices(self) -> list[Invoice]:
        return copy.deepcopy(self._invoices)

    @property
    def saved_insurers(self) -> list[str]:
        return list(self._insurers)

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self._find(invoice_id)
        return copy.deepcopy(invoice) if invoice else None

    # ------------------------------------------
    # Mutations
    # ------------------------------------------
    def add_invoice(self, **fields) -> str:
        values = {k: v for k, v in fields.items() if k != "id"}
        invoice = Invoice.from_dict({**values, "id": new_record_id()})
        invoice.date = invoice.date or format_date(self._clock())
        if "status" not in fields:
            self._apply_amount_rule(invoice, invoice.amount)
        self._invoices.append(invoice)
        self._save()
        return invoice.id

    def set_amount(self, invoice_id: str, value: str) -> Optional[Invoice]:
        """A zero amount marks the visit free of charge; any other amount marks it paid."""
        invoice = self._find(invoice_id)
        if not invoice:
            return None
        self._apply_amount_rule(invoice, value)
        self._save()
        return copy.deepcopy(invoice)

    def set_status(self, invoice_id: str, status: str) -> Optional[Invoice]:
        invoice = self._find(invoice_id)
        if not invoice:
            return None
        invoice.status = status
        self._save()
        return copy.deepcopy(invoice)

    def set_insurance(self, invoice_id: str, active: bool, name: str = "") -> Optional[Invoice]:
        invoice = self._find(invoice_id)
        if not invoice:
            return None
        invoice.insurance = Insurance(bool(active), (name or "").strip())

        if invoice.insurance.active and invoice.insurance.name and invoice.insurance.name not in self._insurers:
            self._insurers.append(invoice.insurance.name)
        self._save()
        return copy.deepcopy(invoice)

    # ------------------------------------------
    # Queries
    # ------------------------------------------
    def filter_invoices(self, search: str = "", start: date | None = None, end: date | None = None) -> list[Invoice]:
        """Invoices whose patient name contains ``search`` and whose date is within [start, end]."""
        out = []
        for invoice in self._invoices:
            if not matches_search(search, invoice.patient):
                continue
            try:
                day = parse_display_date(invoice.date)
            except ValueError:
                continue
            if start and day < start:
                continue
            if end and day > end:
                continue
            out.append(copy.deepcopy(invoice))
        return out

    def export_rows(self, invoices: list[Invoice]) -> list[dict]:
        rows = []
        for invoice in invoices:
            row = invoice.to_dict()
            row["insurance"] = f"Yes - {invoice.insurance.name}" if invoice.insurance.active else "No"
            rows.append(row)
        return rows

    def export_csv(self, invoices: list[Invoice], selected: set | None = None) -> bytes:
        columns = [c for c in EXPORT_COLUMNS if selected is None or c[0] in selected]
        return rows_to_csv(self.export_rows(invoices), columns)

    @staticmethod
    def daily_summary(invoices: list[Invoice]) -> dict:
        paid = [i for i in invoices if i.status == STATUS_PAID and parse_amount(i.amount) > 0]
        revenue = sum(parse_amount(i.amount) for i in invoices if i.status == STATUS_PAID)
        return {
            "total": len(invoices),
            "paid": len(paid),
            "free": sum(1 for i in invoices if i.status == STATUS_FREE),
            "cancelled": sum(1 for i in invoices if i.status == STATUS_CANCELLED),
            "revenue": format_amount(revenue),
            "last_amount": invoices[-1].amount if invoices else format_amount(0),
        }

    # ------------------------------------------
    # Internals
    # ------------------------------------------
    def _find(self, invoice_id) -> Optional[Invoice]:
        return next((i for i in self._invoices if i.id == invoice_id), None)

    @staticmethod
    def _apply_amount_rule(invoice: Invoice, value) -> None:
        amount = str(value or "").strip() or "0"
        invoice.amount = amount
        if parse_amount(amount) == 0:
            invoice.status = STATUS_FREE
            invoice.payment_type = NO_VALUE
        else:
            invoice.status = STATUS_PAID

    def _load(self):
        try:
            invoices = self._storage.read_json(INVOICES_KEY) or []
            self._invoices = [Invoice.from_dict(i) for i in invoices]
            insurers = self._storage.read_json(SAVED_INSURERS_KEY)
            if insurers:
                self._insurers = [str(n) for n in insurers]
        except (SQLAlchemyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Could not load billing data, starting empty: %s", e)
            self._invoices = []

    def _save(self):
        try:
            self._storage.write_json(INVOICES_KEY, [i.to_dict() for i in self._invoices])
            self._storage.write_json(SAVED_INSURERS_KEY, self._insurers)
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Could not save billing data: %s", e)
