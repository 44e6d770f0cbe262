"""Rabattermittlung für Rechnungsentwürfe."""

from __future__ import annotations

from typing import Mapping, Optional

from billing_app.models import Coupon, Customer, DiscountResult

BULK_TIER_1 = "bulk_tier_1"
BULK_TIER_2 = "bulk_tier_2"
BULK_TIER_3 = "bulk_tier_3"
INDEPENDENT_ARTIST = "independent_artist"


def bulk_coupon_id(quantity: int) -> Optional[str]:
    """Wählt die Mengenstaffel; die Untergrenzen gehören zur kleineren Staffel."""

    if 5 <= quantity <= 10:
        return BULK_TIER_1
    if 10 < quantity <= 15:
        return BULK_TIER_2
    if quantity > 15:
        return BULK_TIER_3
    return None


def select_coupons(
    quantity: int,
    customer: Optional[Customer],
    coupons: Mapping[str, Coupon],
) -> list[Coupon]:
    """Sammelt die anwendbaren Gutscheine in fester Reihenfolge.

    Zuerst höchstens ein Mengenrabatt, danach der Independent-Artist-Rabatt.
    Fehlt ein Gutschein im Katalog, wird er übersprungen. Das Feld ``valid``
    wird bewusst nicht ausgewertet.
    """

    selected: list[Coupon] = []

    tier = bulk_coupon_id(quantity)
    if tier is not None and tier in coupons:
        selected.append(coupons[tier])

    if customer is not None and customer.independent:
        independent = coupons.get(INDEPENDENT_ARTIST)
        if independent is not None:
            selected.append(independent)

    return selected


def resolve(
    base_total_cents: int,
    quantity: int,
    customer: Optional[Customer],
    coupons: Mapping[str, Coupon],
) -> DiscountResult:
    """Berechnet den Gesamtrabatt in Cent und die angewendeten Gutscheine.

    - Prozentrabatte werden nacheinander multiplikativ angewendet.
    - Feste Beträge werden summiert und danach abgezogen.
    - Das Ergebnis wird nicht bei null gekappt; übersteigen die Rabatte den
      Grundbetrag, ist der Endbetrag negativ.
    """

    selected = select_coupons(quantity, customer, coupons)

    discounted_total = float(base_total_cents)
    fixed_discount_cents = 0
    for coupon in selected:
        if coupon.percent_off:
            discounted_total *= (100 - coupon.percent_off) / 100
        elif coupon.amount_off:
            fixed_discount_cents += coupon.amount_off

    final_total = discounted_total - fixed_discount_cents
    return DiscountResult(
        total_discount_cents=base_total_cents - final_total,
        applied_coupon_names=[coupon.display_name for coupon in selected],
    )
