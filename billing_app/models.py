"""Datenmodelle für Katalog, Rechnungsentwurf und Rabatte."""

from typing import Optional

from pydantic import BaseModel, Field


class Customer(BaseModel):
    """Kunde, wie ihn der Katalog liefert."""

    id: str
    name: str = ""
    email: str = ""
    # Wird beim Anlegen gesetzt und schaltet den Independent-Artist-Rabatt frei.
    independent: bool = False


class Product(BaseModel):
    """Produkt mit seinem aktiven Preis."""

    id: str
    name: str = ""
    # Preis-ID beim Abrechnungsanbieter; ohne sie kann nicht fakturiert werden.
    price_id: str = ""
    # Maßgeblicher Einzelpreis in Cent; alle Geldberechnungen starten hier.
    unit_price_cents: int = Field(default=0, ge=0)


class Coupon(BaseModel):
    """Rabattgutschein aus dem Katalog.

    Pro Gutschein ist entweder ``percent_off`` oder ``amount_off`` gesetzt.
    Das wird angenommen, aber nicht erzwungen.
    """

    id: str
    name: str = ""
    percent_off: Optional[float] = Field(default=None, ge=0, le=100)
    # Fester Nachlass in Cent.
    amount_off: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None
    valid: bool = True

    @property
    def display_name(self) -> str:
        """Anzeigename; ohne Namen dient die ID."""
        return self.name or self.id


class InvoiceDraft(BaseModel):
    """Noch nicht versendeter Rechnungsentwurf."""

    customer_id: str = ""
    product: Optional[Product] = None
    quantity: int = Field(default=1, ge=1)
    # Ein Titel pro Einheit, immer genau ``quantity`` Einträge.
    titles: list[str] = Field(default_factory=lambda: [""])

    @property
    def base_total_cents(self) -> int:
        """Grundbetrag ohne Rabatte (Menge × Einzelpreis)."""
        if self.product is None:
            return 0
        return self.product.unit_price_cents * self.quantity


class DiscountResult(BaseModel):
    """Ergebnis der Rabattberechnung; wird nie gespeichert, nur neu berechnet."""

    total_discount_cents: float = 0.0
    applied_coupon_names: list[str] = Field(default_factory=list)
