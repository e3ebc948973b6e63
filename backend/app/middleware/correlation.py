"""Request correlation IDs.

Every request carries an X-Request-ID, echoed from the client or generated.
The id is picked up by the structlog processor chain (app.core.logging) and
logged by the error handlers next to the debug_id they return.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI

REQUEST_ID_HEADER = "X-Request-ID"


def setup_correlation_middleware(app: FastAPI) -> None:
    """Attach the correlation ID middleware to the app.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=REQUEST_ID_HEADER,
        generator=lambda: str(uuid.uuid4()),
        validator=None,  # upstream proxies send their own formats
    )


def get_correlation_id() -> str | None:
    """Correlation ID of the current request, None outside a request."""
    return correlation_id.get()


__all__ = ["REQUEST_ID_HEADER", "setup_correlation_middleware", "get_correlation_id"]
