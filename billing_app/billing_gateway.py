from __future__ import annotations
from abc import ABC, abstractmethod
from importlib import import_module
from typing import Optional
from uuid import uuid4

from billing_app.settings import settings


class BillingGateway(ABC):
    """Base class for every billing provider integration."""

    @abstractmethod
    def submit_invoice(
        self, customer_id: str, price_id: str, quantity: int, description: str
    ) -> str:
        """Create and send an invoice, returning the provider's invoice id."""
        raise NotImplementedError


class DummyGateway(BillingGateway):
    """Fallback used when no gateway is configured; accepts every invoice."""

    def submit_invoice(
        self, customer_id: str, price_id: str, quantity: int, description: str
    ) -> str:
        return f"in_dummy_{uuid4().hex[:12]}"


def _load_gateway(path: Optional[str]) -> BillingGateway:
    """Load a gateway class from a ``module:Class`` path."""
    if not path:
        return DummyGateway()
    module_name, class_name = path.split(":")
    module = import_module(module_name)
    gateway_cls = getattr(module, class_name)
    if not issubclass(gateway_cls, BillingGateway):
        raise TypeError("Gateway must inherit from BillingGateway")
    return gateway_cls()


_gateway: Optional[BillingGateway] = None


def get_gateway() -> BillingGateway:
    """Return the gateway, creating it on first use."""
    global _gateway
    if _gateway is None:
        _gateway = _load_gateway(settings.billing_gateway)
    return _gateway
