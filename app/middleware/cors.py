"""
CORS Middleware - Cross-Origin Resource Sharing for the Mini App client.

The Mini App runs inside Telegram's webview on its own origin and calls this
API with the X-Telegram-Init-Data header, so preflight has to allow it.
Authentication never relies on cookies; credentials are not allowed when the
origin list is the "*" wildcard.

Usage:
    from app.middleware.cors import CORSMiddleware

    app.add_middleware(CORSMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS)
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.auth.verify import INIT_DATA_HEADER
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

WILDCARD = "*"


class CORSMiddleware(BaseHTTPMiddleware):
    """Handles preflight OPTIONS requests and adds CORS headers to responses."""

    def __init__(
        self,
        app,
        allowed_origins: list[str] | None = None,
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
        max_age: int = 600,
    ):
        super().__init__(app)
        self.allowed_origins = allowed_origins or []
        self.allow_any_origin = WILDCARD in self.allowed_origins
        self.allow_methods = allow_methods or ["GET", "DELETE", "OPTIONS", "HEAD"]
        self.allow_headers = allow_headers or [
            "Accept",
            "Accept-Language",
            "Content-Type",
            INIT_DATA_HEADER,
            "X-Request-ID",
        ]
        self.max_age = max_age

        logger.info(
            "CORS middleware initialized",
            allowed_origins=self.allowed_origins,
            allow_any_origin=self.allow_any_origin,
        )

    def is_allowed(self, origin: str | None) -> bool:
        if not origin:
            return False
        return self.allow_any_origin or origin in self.allowed_origins

    def _allow_origin_value(self, origin: str) -> str:
        return WILDCARD if self.allow_any_origin else origin

    async def dispatch(self, request, call_next):
        origin = request.headers.get("origin")
        is_allowed_origin = self.is_allowed(origin)

        # Preflight
        if request.method == "OPTIONS" and request.headers.get("access-control-request-method"):
            if is_allowed_origin:
                return self._preflight_response(origin)
            logger.warning("CORS preflight rejected - origin not allowed", origin=origin)
            return Response(status_code=403, content="Origin not allowed")

        response = await call_next(request)

        if is_allowed_origin:
            response.headers["Access-Control-Allow-Origin"] = self._allow_origin_value(origin)
            if not self.allow_any_origin:
                response.headers["Vary"] = "Origin"
        elif origin:
            logger.warning("CORS request from disallowed origin", origin=origin, path=request.url.path)

        return response

    def _preflight_response(self, origin: str) -> Response:
        headers = {
            "Access-Control-Allow-Origin": self._allow_origin_value(origin),
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Max-Age": str(self.max_age),
            # preflight bypasses SecurityHeadersMiddleware
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
        logger.debug("CORS preflight request handled", origin=origin)
        return Response(status_code=204, headers=headers)
