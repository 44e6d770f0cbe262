import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from fastapi.testclient import TestClient
import pytest

from billing_app import billing_gateway, catalog, invoice_routes
from billing_app.billing_gateway import BillingGateway
from billing_app.catalog import InMemoryCatalog
from billing_app.main import app
from billing_app.models import Coupon, Customer, Product


class DummyGateway(BillingGateway):
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def submit_invoice(self, customer_id, price_id, quantity, description):
        self.calls.append((customer_id, price_id, quantity, description))
        if self.fail:
            raise RuntimeError("provider unavailable")
        return "in_test_1"


@pytest.fixture
def gateway(monkeypatch):
    gateway = DummyGateway()
    monkeypatch.setattr(billing_gateway, "_gateway", gateway)
    return gateway


@pytest.fixture
def client(monkeypatch, gateway):
    memory = InMemoryCatalog(
        customers=[Customer(id="cus_indie", name="Indie Ida", independent=True)],
        products=[Product(id="prod_cover", name="Cover", price_id="price_cover", unit_price_cents=2000)],
        coupons=[
            Coupon(id="bulk_tier_1", name="Bulk 10%", percent_off=10),
            Coupon(id="independent_artist", name="Independent Artist", amount_off=500),
        ],
    )
    monkeypatch.setattr(catalog, "_catalog", memory)
    return TestClient(app)


def _start(client):
    response = client.post("/workflows/")
    assert response.status_code == 201
    return response.json()


def _fill(client, workflow_id, quantity=5):
    response = client.patch(
        f"/workflows/{workflow_id}/draft",
        json={"customer_id": "cus_indie", "product_id": "prod_cover", "quantity": quantity},
    )
    assert response.status_code == 200
    for idx in range(quantity):
        response = client.put(f"/workflows/{workflow_id}/titles/{idx}", json={"value": f"T{idx + 1}"})
        assert response.status_code == 200
    return response.json()


def test_read_root(client):
    """Root endpoint answers with usage info"""
    response = client.get("/")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers


def test_start_workflow_loads_catalog(client):
    """Starting a workflow returns an empty draft in compose"""
    data = _start(client)
    assert data["state"] == "compose"
    assert data["draft"]["titles"] == [""]
    assert data["notices"] == []
    assert data["id"] in invoice_routes.WORKFLOWS


def test_draft_update_recomputes_discount(client):
    """Editing the draft refreshes totals and applied coupons"""
    workflow_id = _start(client)["id"]
    data = _fill(client, workflow_id)
    assert len(data["draft"]["titles"]) == 5
    assert data["base_total_cents"] == 10000
    assert data["discount"]["applied_coupon_names"] == ["Bulk 10%", "Independent Artist"]
    assert data["final_total_cents"] == pytest.approx(8500)
    assert "Final Total: $85.00" in data["summary"]


def test_review_with_blank_title_is_rejected(client):
    """Blank titles block the review step"""
    workflow_id = _start(client)["id"]
    _fill(client, workflow_id, quantity=2)
    client.put(f"/workflows/{workflow_id}/titles/1", json={"value": "  "})
    response = client.post(f"/workflows/{workflow_id}/review")
    assert response.status_code == 422
    assert client.get(f"/workflows/{workflow_id}").json()["state"] == "compose"


def test_full_invoice_flow(client, gateway):
    """Compose, review, send and close an invoice"""
    workflow_id = _start(client)["id"]
    _fill(client, workflow_id, quantity=2)

    response = client.post(f"/workflows/{workflow_id}/review")
    assert response.json()["state"] == "reviewing"
    response = client.patch(f"/workflows/{workflow_id}/draft", json={"quantity": 3})
    assert response.status_code == 409

    response = client.post(f"/workflows/{workflow_id}/send")
    data = response.json()
    assert data["state"] == "result"
    assert data["result"] == "success"
    assert data["invoice_id"] == "in_test_1"
    assert data["draft"]["customer_id"] == ""
    assert gateway.calls == [("cus_indie", "price_cover", 2, "1. T1\n2. T2")]

    response = client.post(f"/workflows/{workflow_id}/close")
    assert response.status_code == 200
    assert workflow_id not in invoice_routes.WORKFLOWS
    assert client.get(f"/workflows/{workflow_id}").status_code == 404


def test_failed_send_can_be_retried(client, gateway):
    """A failed submission keeps the draft and allows a retry"""
    gateway.fail = True
    workflow_id = _start(client)["id"]
    _fill(client, workflow_id, quantity=1)
    client.post(f"/workflows/{workflow_id}/review")

    data = client.post(f"/workflows/{workflow_id}/send").json()
    assert data["result"] == "error"
    assert data["error"]["kind"] == "failed"
    assert data["draft"]["customer_id"] == "cus_indie"

    data = client.post(f"/workflows/{workflow_id}/retry").json()
    assert data["state"] == "reviewing"

    gateway.fail = False
    data = client.post(f"/workflows/{workflow_id}/send").json()
    assert data["result"] == "success"


def test_send_from_compose_conflicts(client):
    """Send is only accepted after review"""
    workflow_id = _start(client)["id"]
    response = client.post(f"/workflows/{workflow_id}/send")
    assert response.status_code == 409


def test_cancel_removes_workflow(client):
    """Cancel exits from compose"""
    workflow_id = _start(client)["id"]
    response = client.post(f"/workflows/{workflow_id}/cancel")
    assert response.json()["closed"] is True
    assert workflow_id not in invoice_routes.WORKFLOWS


def test_create_customer(client):
    """New customers appear in workflows started afterwards"""
    response = client.post(
        "/customers/", json={"name": "Bo", "email": "bo@example.test", "independent": True}
    )
    assert response.status_code == 201
    customer_id = response.json()["id"]

    workflow = invoice_routes.WORKFLOWS[_start(client)["id"]]
    assert workflow.catalog.find_customer(customer_id).independent


def test_rejected_draft_update_changes_nothing(client):
    """A 422 on one field leaves the other fields of the request unapplied"""
    workflow_id = _start(client)["id"]

    response = client.patch(
        f"/workflows/{workflow_id}/draft",
        json={"customer_id": "cus_indie", "product_id": "prod_missing"},
    )
    assert response.status_code == 422
    response = client.patch(
        f"/workflows/{workflow_id}/draft",
        json={"customer_id": "cus_indie", "quantity": 0},
    )
    assert response.status_code == 422

    draft = client.get(f"/workflows/{workflow_id}").json()["draft"]
    assert draft["customer_id"] == ""
    assert draft["product"] is None
    assert draft["quantity"] == 1


def test_snapshot_lists_catalog(client):
    """Pickers can be filled from the workflow snapshot"""
    data = _start(client)
    assert [c["id"] for c in data["customers"]] == ["cus_indie"]
    assert [p["id"] for p in data["products"]] == ["prod_cover"]
    assert {c["id"] for c in data["coupons"]} == {"bulk_tier_1", "independent_artist"}
    assert data["late_invoice_id"] is None


def test_list_customers_includes_created(client):
    created = client.post("/customers/", json={"name": "Bo", "email": "bo@example.test"}).json()

    response = client.get("/customers/")
    assert response.status_code == 200
    ids = [c["id"] for c in response.json()]
    assert ids == ["cus_indie", created["id"]]
