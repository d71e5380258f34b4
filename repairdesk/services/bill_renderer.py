"""Repair bill PDF generation using xhtml2pdf."""

from __future__ import annotations

import io
import re
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from repairdesk.config import BillingConfig
from repairdesk.services.billing import format_minor_units, line_amount_minor, to_minor_units

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)), autoescape=True)


def _money(value) -> str:
    try:
        return format_minor_units(to_minor_units(value))
    except ValueError:
        return "0.00"


def _get(obj, name: str, default=""):
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def paginate_parts(parts: list, first_page: int = 5, per_page: int = 15) -> list[list]:
    """Split part rows into pages: `first_page` rows, then `per_page` each."""
    pages = [list(parts[:first_page])]
    rest = list(parts[first_page:])
    while rest:
        pages.append(rest[:per_page])
        rest = rest[per_page:]
    return pages


def vehicle_heading(vehicle_type: str) -> str:
    label = (vehicle_type or "vehicle").strip() or "vehicle"
    return f"{label[0].upper()}{label[1:]} Information"


def bill_filename(entry) -> str:
    name = re.sub(r"\s+", "-", _get(entry, "customer_name").strip())
    return f"Repair-Bill-{name}-{_get(entry, 'id')}.pdf"


def render_bill_html(entry, company=None, billing: BillingConfig | None = None) -> str:
    billing = billing or BillingConfig()
    rows = []
    for part in _get(entry, "parts", []) or []:
        rows.append({
            "description": _get(part, "description"),
            "quantity": _get(part, "quantity", 1),
            "price": _money(_get(part, "price", 0)),
            "amount": format_minor_units(line_amount_minor(part)),
        })

    template = _env.get_template("bill.html.j2")
    return template.render(
        entry=entry,
        company_name=_get(company, "company_name"),
        footer_address=_get(company, "address") or billing.default_address,
        vehicle_heading=vehicle_heading(_get(company, "vehicle_type", "vehicle")),
        pages=paginate_parts(rows, billing.first_page_parts, billing.parts_per_page) if rows else [],
        currency=billing.currency_symbol,
        total_amount=_money(_get(entry, "total_amount", "0")),
        advance_amount=_money(_get(entry, "advancecash", "0")),
        final_amount=_money(_get(entry, "final_amount", "0")),
        generated_on=datetime.now(timezone.utc).strftime("%B %d, %Y"),
    )


def render_bill_pdf(entry, company=None, billing: BillingConfig | None = None) -> bytes:
    """Render the bill for one entry. Returns PDF bytes."""
    from xhtml2pdf import pisa

    html = render_bill_html(entry, company, billing)
    pdf_buffer = io.BytesIO()
    pisa_status = pisa.CreatePDF(io.StringIO(html), dest=pdf_buffer, encoding="utf-8")
    if pisa_status.err:
        raise RuntimeError(f"Bill PDF generation failed with {pisa_status.err} errors")

    return pdf_buffer.getvalue()
