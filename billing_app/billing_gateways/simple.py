"""Local billing gateway that keeps submitted invoices in memory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from uuid import uuid4

from billing_app.billing_gateway import BillingGateway

logger = logging.getLogger(__name__)


@dataclass
class SubmittedInvoice:
    invoice_id: str
    customer_id: str
    price_id: str
    quantity: int
    description: str


class SimpleGateway(BillingGateway):
    """Example gateway: records every invoice instead of contacting a provider.

    A real integration would call the provider's API here. Useful for demos
    and for running the service without credentials.
    """

    def __init__(self) -> None:
        self.submitted: list[SubmittedInvoice] = []
        self._lock = RLock()

    def submit_invoice(
        self, customer_id: str, price_id: str, quantity: int, description: str
    ) -> str:
        invoice_id = f"in_local_{uuid4().hex[:12]}"
        with self._lock:
            self.submitted.append(
                SubmittedInvoice(invoice_id, customer_id, price_id, quantity, description)
            )
        logger.info("Recorded local invoice %s for %s", invoice_id, customer_id)
        return invoice_id
