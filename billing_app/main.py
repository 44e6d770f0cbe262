import logging
from uuid import uuid4

from fastapi import FastAPI, Request

from billing_app.billing_gateway import get_gateway
from billing_app.invoice_routes import router as invoice_router
from billing_app.logging_config import configure_logging
from billing_app.log_context import request_id_ctx_var
from billing_app.settings import settings

# Apply the logging configuration once at import time.
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI()


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = str(uuid4())
    token = request_id_ctx_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(invoice_router)


@app.on_event("startup")
def _check_billing_gateway() -> None:
    """Load the configured gateway at startup so a bad path fails early."""
    gateway = get_gateway()
    logger.info("Using billing gateway %s", gateway.__class__.__name__)
    if settings.stripe_api_key is None:
        logger.warning("No billing provider API key configured")


@app.get("/")
def read_root():
    """Simple health/info endpoint for the API root."""
    return {
        "message": "Invoice desk running",
        "usage": "POST /workflows/ to start a new invoice",
    }
