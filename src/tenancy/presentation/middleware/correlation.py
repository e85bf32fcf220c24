"""Correlation ID middleware for request tracing"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tenancy.shared.telemetry.correlation import correlation_id_var
from tenancy.shared.utils.generators import generate_cuid

HEADER_NAME = "X-Correlation-ID"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with a correlation id.

    Accepts the client's X-Correlation-ID or generates one, exposes it to
    logging for the lifetime of the request and echoes it in the response.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(HEADER_NAME) or generate_cuid()
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[HEADER_NAME] = correlation_id
        return response
