"""Request ID and usage logging middleware."""

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from metered_api.services.usage_recorder import get_usage_recorder


class UsageLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an ID and records the outcome of metered ones.

    Only requests the credit gate admitted carry ``request.state.user_id``;
    rejected requests leave no usage entry behind.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        user_id = getattr(request.state, "user_id", None)
        if user_id is not None:
            get_usage_recorder().record(
                user_id=user_id,
                endpoint=request.url.path,
                method=request.method,
                status_code=response.status_code,
            )

        return response
