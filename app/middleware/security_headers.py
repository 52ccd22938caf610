"""
Security Headers Middleware - Add security headers to all responses.

The API only serves JSON to the Mini App, so the CSP blocks everything except
being embedded by Telegram's own web clients.

Usage:
    from app.middleware.security_headers import SecurityHeadersMiddleware

    app.add_middleware(SecurityHeadersMiddleware, enforce_https=True)
"""

from starlette.middleware.base import BaseHTTPMiddleware

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_WEB_ORIGINS = ("https://web.telegram.org", "https://webk.telegram.org", "https://webz.telegram.org")

CONTENT_SECURITY_POLICY = (
    "default-src 'none'; "
    f"frame-ancestors 'self' {' '.join(TELEGRAM_WEB_ORIGINS)}; "
    "base-uri 'none'; "
    "form-action 'none'"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, enforce_https: bool = False):
        """
        Args:
            app: FastAPI application
            enforce_https: Whether to add HSTS header (production only)
        """
        super().__init__(app)
        self.enforce_https = enforce_https

        logger.info("Security headers middleware initialized", enforce_https=self.enforce_https)

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if self.enforce_https:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Profiles are per-account; never let shared caches keep them
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"

        return response
