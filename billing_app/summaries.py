"""Textdarstellung von Beträgen und der Prüfansicht."""

from __future__ import annotations

from typing import Optional

from billing_app.models import Customer, DiscountResult, InvoiceDraft
from billing_app.settings import settings


def format_money(cents: float | None) -> str:
    """Formatiert einen Centbetrag mit zwei Nachkommastellen, z. B. ``$12.50``."""

    if cents is None:
        cents = 0.0

    amount = cents / 100
    sign = "-" if amount < 0 else ""
    return f"{sign}{settings.currency_symbol}{abs(amount):.2f}"


def totals_lines(draft: InvoiceDraft, discount: DiscountResult) -> list[str]:
    """Grundbetrag, Rabatt (nur wenn positiv) und Endbetrag."""

    base = draft.base_total_cents
    lines = [f"Base Total: {format_money(base)}"]
    if discount.total_discount_cents > 0:
        names = ", ".join(discount.applied_coupon_names)
        lines.append(
            f"Discounts Applied ({names}): -{format_money(discount.total_discount_cents)}"
        )
    lines.append(f"Final Total: {format_money(base - discount.total_discount_cents)}")
    return lines


def build_review_summary(
    draft: InvoiceDraft,
    customer: Optional[Customer],
    discount: DiscountResult,
) -> list[str]:
    """Erstellt die Zeilen der Prüfansicht vor dem Versand."""

    customer_name = customer.name if customer is not None and customer.name else ""
    product = draft.product

    if product is not None:
        product_text = f"{product.name} x {draft.quantity}"
    else:
        product_text = "No product selected"

    lines = [
        f"Customer: {customer_name or 'No customer selected'}",
        f"Product: {product_text}",
        "Titles:",
    ]
    lines.extend(f"{idx}. {title}" for idx, title in enumerate(draft.titles, start=1))
    lines.extend(totals_lines(draft, discount))
    return lines
