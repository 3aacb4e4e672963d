"""Answer ``/robots.txt`` with a disallow-all policy.

Package feeds have nothing for crawlers to index.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

ROBOTS_BODY = "User-agent: *\r\nDisallow: /\r\n"


class RobotsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.lower() == "/robots.txt":
            return PlainTextResponse(ROBOTS_BODY)
        return await call_next(request)
