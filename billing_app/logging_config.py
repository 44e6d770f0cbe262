import logging

from billing_app.log_context import LogContextFilter
from billing_app.settings import settings


def configure_logging() -> None:
    """Configure one console format for the whole application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=(
            "%(asctime)s %(levelname)s [%(name)s] "
            "[%(request_id)s] [wf=%(workflow_id)s] %(message)s"
        ),
    )
    # Filter on the handlers: records from child loggers skip root logger filters.
    for handler in logging.getLogger().handlers:
        handler.addFilter(LogContextFilter())
