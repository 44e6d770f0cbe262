"""Ablaufsteuerung für das Erstellen und Versenden einer Rechnung.

Ein Workflow durchläuft die Schritte Erfassen (``COMPOSE``), Prüfen
(``REVIEWING``), Versenden (``SENDING``) und Ergebnis (``RESULT``). Der
Entwurf gehört allein dem Workflow; Rabatte werden bei jedem Zugriff aus
dem aktuellen Entwurf neu berechnet.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional
from uuid import uuid4

from billing_app.billing_gateway import BillingGateway, get_gateway
from billing_app.catalog import Catalog, CatalogData, load_catalog
from billing_app.discounts import resolve
from billing_app.errors import DraftValidationError, SubmissionError, WorkflowStateError
from billing_app.models import Customer, DiscountResult, InvoiceDraft
from billing_app.settings import settings
from billing_app.summaries import build_review_summary
from billing_app.titles import blank_indices, format_description, resize, set_title_at

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    COMPOSE = "compose"
    REVIEWING = "reviewing"
    SENDING = "sending"
    RESULT = "result"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class InvoiceWorkflow:
    """Zustandsautomat für genau einen Rechnungsentwurf."""

    def __init__(
        self,
        gateway: Optional[BillingGateway] = None,
        catalog: Optional[CatalogData] = None,
        workflow_id: Optional[str] = None,
    ) -> None:
        self.id = workflow_id or uuid4().hex
        self.gateway = gateway or get_gateway()
        self.catalog = catalog or CatalogData()
        self.draft = InvoiceDraft()
        self.state = WorkflowState.COMPOSE
        self.closed = False
        self.loading = False
        self.result_status: Optional[ResultStatus] = None
        self.invoice_id: Optional[str] = None
        self.error: Optional[SubmissionError] = None
        # Rechnung, die erst nach Timeout oder Abbruch angelegt wurde.
        self.late_invoice_id: Optional[str] = None
        self._pending: Optional[asyncio.Future] = None
        self._abandoned: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------
    # Abgeleitete Werte
    # ------------------------------------------------------------------

    @property
    def customer(self) -> Optional[Customer]:
        return self.catalog.find_customer(self.draft.customer_id)

    @property
    def notices(self) -> list[str]:
        return self.catalog.notices

    @property
    def discount(self) -> DiscountResult:
        """Aktueller Rabatt; ohne Produkt gibt es keinen."""
        if self.draft.product is None:
            return DiscountResult()
        return resolve(
            self.draft.base_total_cents,
            self.draft.quantity,
            self.customer,
            self.catalog.coupons,
        )

    @property
    def base_total_cents(self) -> int:
        return self.draft.base_total_cents

    @property
    def final_total_cents(self) -> float:
        # Nicht bei null gekappt.
        return self.draft.base_total_cents - self.discount.total_discount_cents

    def summary(self) -> list[str]:
        return build_review_summary(self.draft, self.customer, self.discount)

    # ------------------------------------------------------------------
    # Katalog
    # ------------------------------------------------------------------

    async def load(self, catalog: Catalog) -> None:
        """Lädt den Katalog; Ergebnisse nach einem Abbruch werden verworfen."""
        self._require("load", WorkflowState.COMPOSE)
        self.loading = True
        try:
            data = await load_catalog(catalog)
        finally:
            self.loading = False
        if self.closed:
            logger.info("Discarding catalog for closed workflow %s", self.id)
            return
        self.catalog = data
        logger.info(
            "Workflow %s loaded %d customers, %d products, %d coupons",
            self.id,
            len(data.customers),
            len(data.products),
            len(data.coupons),
        )

    # ------------------------------------------------------------------
    # Bearbeiten im Schritt COMPOSE
    # ------------------------------------------------------------------

    def select_customer(self, customer_id: str) -> None:
        self._edit("select_customer", {"customer_id": customer_id})

    def select_product(self, product_id: Optional[str]) -> None:
        self._edit("select_product", {"product_id": product_id})

    def set_quantity(self, quantity: int) -> None:
        """Setzt die Menge und gleicht die Titel-Liste sofort an."""
        self._edit("set_quantity", {"quantity": quantity})

    def update_draft(self, changes: dict) -> None:
        """Übernimmt mehrere Änderungen gemeinsam oder gar keine.

        Erlaubte Schlüssel: ``customer_id``, ``product_id``, ``quantity``.
        """
        self._edit("update_draft", changes)

    def _edit(self, event: str, changes: dict) -> None:
        self._require(event, WorkflowState.COMPOSE)

        # Erst alles prüfen, dann schreiben.
        problems: list[str] = []
        product = self.draft.product
        if "product_id" in changes:
            product_id = changes["product_id"]
            product = self.catalog.find_product(product_id) if product_id else None
            if product_id and product is None:
                problems.append(f"Unknown product '{product_id}'")
        quantity = changes.get("quantity")
        if quantity is not None and quantity < 1:
            problems.append("Quantity must be at least 1")
        if problems:
            raise DraftValidationError(problems)

        if "customer_id" in changes:
            self.draft.customer_id = changes["customer_id"] or ""
        if "product_id" in changes:
            self.draft.product = product
        if quantity is not None:
            self.draft.quantity = quantity
            self.draft.titles = resize(self.draft.titles, quantity)

    def set_title(self, index: int, value: str) -> None:
        self._require("set_title", WorkflowState.COMPOSE)
        self.draft.titles = set_title_at(self.draft.titles, index, value)

    # ------------------------------------------------------------------
    # Übergänge
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Listet alles auf, was vor der Prüfung noch fehlt."""
        problems: list[str] = []
        if not self.draft.customer_id:
            problems.append("Please select a customer")
        product = self.draft.product
        if product is None:
            problems.append("Please select a product")
        elif not product.price_id:
            problems.append("The selected product has no valid price")
        if blank_indices(self.draft.titles):
            problems.append("Please fill in all required title name fields")
        return problems

    def review(self) -> None:
        self._require("review", WorkflowState.COMPOSE)
        problems = self.validate()
        if problems:
            logger.info("Workflow %s review rejected: %s", self.id, problems)
            raise DraftValidationError(problems)
        self.error = None
        self.result_status = None
        self.state = WorkflowState.REVIEWING
        logger.info("Workflow %s entered review", self.id)

    def back(self) -> None:
        self._require("back", WorkflowState.REVIEWING)
        self.state = WorkflowState.COMPOSE

    async def send(self) -> ResultStatus:
        """Übergibt den Entwurf an das Abrechnungssystem.

        Während ``SENDING`` ist kein weiterer Versand möglich. Das Ergebnis
        ist genau eines von Erfolg (Entwurf wird geleert) oder Fehler
        (Entwurf bleibt für einen erneuten Versuch erhalten).
        """

        self._require("send", WorkflowState.REVIEWING)
        self._require_no_outstanding_submission("send")
        self.state = WorkflowState.SENDING
        draft = self.draft
        description = format_description(draft.titles)
        logger.info(
            "Workflow %s sending invoice for %s (%s x %d)",
            self.id,
            draft.customer_id,
            draft.product.price_id,
            draft.quantity,
        )

        # Der Gateway-Aufruf läuft weiter, auch wenn wir nicht mehr warten.
        pending = asyncio.ensure_future(
            asyncio.to_thread(
                self.gateway.submit_invoice,
                draft.customer_id,
                draft.product.price_id,
                draft.quantity,
                description,
            )
        )
        pending.add_done_callback(self._on_submission_done)
        self._pending = pending

        try:
            invoice_id = await asyncio.wait_for(
                asyncio.shield(pending), timeout=settings.submission_timeout
            )
        except asyncio.CancelledError:
            self._abandoned = pending
            self.state = WorkflowState.REVIEWING
            raise
        except Exception as exc:
            # Ein TimeoutError des Gateways selbst ist ein normaler Fehler.
            if isinstance(exc, asyncio.TimeoutError) and not pending.done():
                self._abandoned = pending
                logger.warning(
                    "Workflow %s: invoice submission timed out after %.1f s",
                    self.id,
                    settings.submission_timeout,
                )
                return self._fail(
                    SubmissionError(SubmissionError.TIMEOUT, "Invoice submission timed out")
                )
            logger.exception("Workflow %s: failed to create invoice", self.id)
            return self._fail(SubmissionError(SubmissionError.FAILED, str(exc)))

        self.invoice_id = invoice_id
        self.result_status = ResultStatus.SUCCESS
        self.state = WorkflowState.RESULT
        # Neuer, leerer Entwurf für die nächste Rechnung.
        self.draft = InvoiceDraft()
        logger.info("Workflow %s created invoice %s", self.id, invoice_id)
        return self.result_status

    def _fail(self, error: SubmissionError) -> ResultStatus:
        self.error = error
        self.invoice_id = None
        self.result_status = ResultStatus.ERROR
        self.state = WorkflowState.RESULT
        return self.result_status

    def _on_submission_done(self, future: asyncio.Future) -> None:
        """Hält das Ergebnis eines Versands fest, auf den niemand mehr wartet."""
        if future is not self._abandoned or future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Workflow %s: abandoned submission failed: %s", self.id, exc)
            return
        self.late_invoice_id = future.result()
        logger.warning(
            "Workflow %s: invoice %s was created after the submission was abandoned",
            self.id,
            self.late_invoice_id,
        )

    def retry(self) -> None:
        """Kehrt nach einem Fehler mit unverändertem Entwurf zur Prüfung zurück."""
        self._require("retry", WorkflowState.RESULT)
        if self.result_status is not ResultStatus.ERROR:
            raise WorkflowStateError("retry", "showing a successful result")
        self._require_no_outstanding_submission("retry")
        self.error = None
        self.result_status = None
        self.state = WorkflowState.REVIEWING

    def cancel(self) -> None:
        self._require("cancel", WorkflowState.COMPOSE)
        self._exit()

    def close(self) -> None:
        self._require("close", WorkflowState.RESULT)
        self._exit()

    def _exit(self) -> None:
        self.closed = True
        self.draft = InvoiceDraft()
        logger.info("Workflow %s closed", self.id)

    def _require_no_outstanding_submission(self, event: str) -> None:
        # Höchstens ein Gateway-Aufruf pro Workflow, auch nach einem Timeout.
        if self._pending is not None and not self._pending.done():
            raise WorkflowStateError(event, "an earlier submission is still running")
        if self.late_invoice_id is not None:
            raise WorkflowStateError(
                event, f"invoice {self.late_invoice_id} was already created"
            )

    def _require(self, event: str, state: WorkflowState) -> None:
        if self.closed:
            raise WorkflowStateError(event, "closed")
        if self.state is not state:
            raise WorkflowStateError(event, self.state.value)
