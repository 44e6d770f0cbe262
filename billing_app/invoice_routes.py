"""HTTP endpoints that drive invoice workflows."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from billing_app.catalog import get_catalog
from billing_app.errors import DraftValidationError, WorkflowStateError
from billing_app.log_context import workflow_id_ctx_var
from billing_app.workflow import InvoiceWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()

# Running workflows by id
WORKFLOWS: Dict[str, InvoiceWorkflow] = {}


class DraftUpdate(BaseModel):
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: Optional[int] = None


class TitleUpdate(BaseModel):
    value: str


class NewCustomer(BaseModel):
    name: str
    email: str
    independent: bool = False


def _get_workflow(workflow_id: str) -> InvoiceWorkflow:
    workflow = WORKFLOWS.get(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    workflow_id_ctx_var.set(workflow_id)
    return workflow


def _snapshot(workflow: InvoiceWorkflow) -> dict:
    """Everything a presentation layer needs to render the current step."""
    discount = workflow.discount
    error = None
    if workflow.error is not None:
        error = {"kind": workflow.error.kind, "message": str(workflow.error)}
    return {
        "id": workflow.id,
        "state": workflow.state.value,
        "closed": workflow.closed,
        "loading": workflow.loading,
        "result": workflow.result_status.value if workflow.result_status else None,
        "invoice_id": workflow.invoice_id,
        "late_invoice_id": workflow.late_invoice_id,
        "error": error,
        "customers": [c.model_dump(mode="json") for c in workflow.catalog.customers],
        "products": [p.model_dump(mode="json") for p in workflow.catalog.products],
        "coupons": [c.model_dump(mode="json") for c in workflow.catalog.coupons.values()],
        "draft": workflow.draft.model_dump(mode="json"),
        "base_total_cents": workflow.base_total_cents,
        "discount": discount.model_dump(mode="json"),
        "final_total_cents": workflow.final_total_cents,
        "summary": workflow.summary(),
        "notices": list(workflow.notices),
    }


def _apply(workflow: InvoiceWorkflow, action, *args) -> dict:
    """Run one workflow event and translate its errors into HTTP errors."""
    try:
        action(*args)
    except DraftValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.problems)
    except WorkflowStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _snapshot(workflow)


@router.post("/workflows/", status_code=201)
async def start_workflow():
    """Start a new invoice and load customers, products and coupons."""
    workflow = InvoiceWorkflow()
    WORKFLOWS[workflow.id] = workflow
    workflow_id_ctx_var.set(workflow.id)
    await workflow.load(get_catalog())
    return _snapshot(workflow)


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: str):
    return _snapshot(_get_workflow(workflow_id))


@router.patch("/workflows/{workflow_id}/draft")
def update_draft(workflow_id: str, update: DraftUpdate):
    """Apply all given fields together; a rejected request changes nothing."""
    workflow = _get_workflow(workflow_id)
    changes = update.model_dump(include=update.model_fields_set)
    if changes.get("quantity", 0) is None:
        del changes["quantity"]
    return _apply(workflow, workflow.update_draft, changes)


@router.put("/workflows/{workflow_id}/titles/{index}")
def update_title(workflow_id: str, index: int, update: TitleUpdate):
    workflow = _get_workflow(workflow_id)
    return _apply(workflow, workflow.set_title, index, update.value)


@router.post("/workflows/{workflow_id}/review")
def review_workflow(workflow_id: str):
    workflow = _get_workflow(workflow_id)
    return _apply(workflow, workflow.review)


@router.post("/workflows/{workflow_id}/back")
def back_to_compose(workflow_id: str):
    workflow = _get_workflow(workflow_id)
    return _apply(workflow, workflow.back)


@router.post("/workflows/{workflow_id}/send")
async def send_invoice(workflow_id: str):
    """Submit the reviewed invoice; failures are reported in the result state."""
    workflow = _get_workflow(workflow_id)
    try:
        await workflow.send()
    except WorkflowStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _snapshot(workflow)


@router.post("/workflows/{workflow_id}/retry")
def retry_invoice(workflow_id: str):
    workflow = _get_workflow(workflow_id)
    return _apply(workflow, workflow.retry)


@router.post("/workflows/{workflow_id}/cancel")
def cancel_workflow(workflow_id: str):
    workflow = _get_workflow(workflow_id)
    snapshot = _apply(workflow, workflow.cancel)
    WORKFLOWS.pop(workflow_id, None)
    return snapshot


@router.post("/workflows/{workflow_id}/close")
def close_workflow(workflow_id: str):
    workflow = _get_workflow(workflow_id)
    snapshot = _apply(workflow, workflow.close)
    WORKFLOWS.pop(workflow_id, None)
    return snapshot


@router.get("/customers/")
def list_customers():
    """Current customers of the catalog, for customer lists and pickers."""
    try:
        customers = get_catalog().fetch_customers()
    except Exception as exc:
        logger.exception("Failed to load customers")
        raise HTTPException(status_code=502, detail=f"Failed to load customers: {exc}")
    return [customer.model_dump(mode="json") for customer in customers]


@router.post("/customers/", status_code=201)
def create_customer(customer: NewCustomer):
    """Pass-through to the catalog; shows up in workflows started afterwards."""
    try:
        created = get_catalog().create_customer(
            customer.name, customer.email, customer.independent
        )
    except Exception as exc:
        logger.exception("Failed to create customer")
        raise HTTPException(status_code=502, detail=f"Failed to create customer: {exc}")
    return created.model_dump(mode="json")
