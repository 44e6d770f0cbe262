import logging
import inspect
import sys
import os
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from billing_app import billing_gateway, catalog, invoice_routes
from billing_app.catalog import CatalogData
from billing_app.models import Coupon, Customer, Product


@pytest.fixture(autouse=True)
def log_test_start(request):
    doc = inspect.getdoc(request.node.obj) if hasattr(request.node, "obj") else None
    if doc:
        first_line = doc.splitlines()[0]
        logging.info(f"START {request.node.name} - {first_line}")
    else:
        logging.info(f"START {request.node.name}")
    yield
    logging.info(f"END {request.node.name}")


@pytest.fixture(autouse=True)
def reset_collaborators(monkeypatch):
    monkeypatch.setattr(billing_gateway, "_gateway", None)
    monkeypatch.setattr(catalog, "_catalog", None)
    monkeypatch.setattr(invoice_routes, "WORKFLOWS", {})
    yield


@pytest.fixture
def catalog_data():
    return CatalogData(
        customers=[
            Customer(id="cus_label", name="Label Records", email="ap@label.test"),
            Customer(id="cus_indie", name="Indie Ida", email="ida@indie.test", independent=True),
        ],
        products=[
            Product(id="prod_cover", name="Cover Design", price_id="price_cover", unit_price_cents=2000),
            Product(id="prod_draft", name="Unpriced", price_id="", unit_price_cents=1000),
        ],
        coupons={
            "bulk_tier_1": Coupon(id="bulk_tier_1", name="Bulk 10%", percent_off=10),
            "bulk_tier_2": Coupon(id="bulk_tier_2", name="Bulk 15%", percent_off=15),
            "bulk_tier_3": Coupon(id="bulk_tier_3", name="", percent_off=20),
            "independent_artist": Coupon(
                id="independent_artist", name="Independent Artist", amount_off=500
            ),
        },
    )
