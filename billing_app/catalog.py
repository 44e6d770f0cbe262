"""Zugriff auf Kunden, Produkte und Gutscheine des Abrechnungsanbieters."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from importlib import import_module
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional, TypeVar
from uuid import uuid4

from billing_app.errors import LoadError
from billing_app.models import Coupon, Customer, Product
from billing_app.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Catalog(ABC):
    """Basisklasse für alle Katalog-Quellen."""

    @abstractmethod
    def fetch_customers(self) -> List[Customer]:
        raise NotImplementedError

    @abstractmethod
    def fetch_products(self) -> List[Product]:
        raise NotImplementedError

    @abstractmethod
    def fetch_coupons(self) -> Dict[str, Coupon]:
        """Aktive Gutscheine, nach ID abgelegt."""
        raise NotImplementedError

    @abstractmethod
    def create_customer(self, name: str, email: str, independent: bool) -> Customer:
        raise NotImplementedError


_DEMO_COUPONS = [
    Coupon(id="bulk_tier_1", name="Bulk 10%", percent_off=10),
    Coupon(id="bulk_tier_2", name="Bulk 15%", percent_off=15),
    Coupon(id="bulk_tier_3", name="Bulk 20%", percent_off=20),
    Coupon(id="independent_artist", name="Independent Artist", amount_off=500, currency="usd"),
]


class InMemoryCatalog(Catalog):
    """Rückfalllösung mit fest hinterlegten Daten, solange kein Anbieter konfiguriert ist."""

    def __init__(
        self,
        customers: Optional[Iterable[Customer]] = None,
        products: Optional[Iterable[Product]] = None,
        coupons: Optional[Iterable[Coupon]] = None,
    ) -> None:
        self._customers = list(customers) if customers is not None else []
        self._products = list(products) if products is not None else [
            Product(id="prod_cover", name="Cover Design", price_id="price_cover", unit_price_cents=2500),
        ]
        coupon_list = list(coupons) if coupons is not None else _DEMO_COUPONS
        self._coupons = {coupon.id: coupon for coupon in coupon_list}
        self._lock = RLock()

    def fetch_customers(self) -> List[Customer]:
        with self._lock:
            return list(self._customers)

    def fetch_products(self) -> List[Product]:
        return list(self._products)

    def fetch_coupons(self) -> Dict[str, Coupon]:
        return dict(self._coupons)

    def create_customer(self, name: str, email: str, independent: bool) -> Customer:
        customer = Customer(
            id=f"cus_{uuid4().hex[:12]}", name=name, email=email, independent=independent
        )
        with self._lock:
            self._customers.append(customer)
        return customer


def _load_catalog(path: Optional[str]) -> Catalog:
    """Dynamisch eine Katalog-Klasse aus ``module:Class`` laden."""
    if not path:
        return InMemoryCatalog()
    module_name, class_name = path.split(":")
    module = import_module(module_name)
    catalog_cls = getattr(module, class_name)
    if not issubclass(catalog_cls, Catalog):
        raise TypeError("Catalog must inherit from Catalog")
    return catalog_cls()


_catalog: Optional[Catalog] = None


def get_catalog() -> Catalog:
    """Gibt den einmalig initialisierten Katalog zurück."""
    global _catalog
    if _catalog is None:
        _catalog = _load_catalog(settings.catalog)
    return _catalog


@dataclass
class CatalogData:
    """Schreibgeschützter Stand des Katalogs für einen Workflow."""

    customers: List[Customer] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    coupons: Dict[str, Coupon] = field(default_factory=dict)
    notices: List[str] = field(default_factory=list)

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self.customers if c.id == customer_id), None)

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)


async def _fetch(name: str, fetch: Callable[[], T]) -> T:
    """Führt einen blockierenden Abruf im Thread aus; Fehler werden zu ``LoadError``."""
    try:
        return await asyncio.to_thread(fetch)
    except Exception as exc:
        raise LoadError(name, str(exc) or exc.__class__.__name__) from exc


async def load_catalog(catalog: Catalog) -> CatalogData:
    """Lädt alle drei Sammlungen parallel und führt sie erst am Ende zusammen.

    Eine fehlgeschlagene Sammlung bleibt leer und erzeugt einen Hinweis,
    der Rest ist weiter nutzbar.
    """

    results = await asyncio.gather(
        _fetch("customers", catalog.fetch_customers),
        _fetch("products", catalog.fetch_products),
        _fetch("coupons", catalog.fetch_coupons),
        return_exceptions=True,
    )

    data = CatalogData()
    for attr, result in zip(("customers", "products", "coupons"), results):
        if isinstance(result, LoadError):
            logger.warning("%s", result)
            data.notices.append(str(result))
        elif isinstance(result, BaseException):
            raise result
        elif result is not None:
            setattr(data, attr, result)
    return data
