"""
Page-level auth gate middleware.

Runs before any page route:
- Static assets and /api/* pass straight through (API routes do their own auth)
- Public pages pass
- Protected sections (/client, /therapist, /admin, /session) need an auth token,
  otherwise the browser is redirected to /login?redirect=<path>
- Anything else redirects to /login

Only token presence and shape are checked here. Signature and role checks
happen in the API dependencies.
"""

import logging
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response

from .auth import AUTH_COOKIE_NAME

logger = logging.getLogger(__name__)

PASSTHROUGH_PREFIXES = ("/_next", "/static", "/favicon.ico", "/api")
PUBLIC_ROUTES = ("/login", "/register", "/forgot-password")
PROTECTED_PREFIXES = ("/client", "/therapist", "/admin", "/session")

# Tokens this short are never real Firebase ID tokens
MIN_TOKEN_LENGTH = 20


def is_public_route(path: str) -> bool:
    return path == "/" or any(path.startswith(route) for route in PUBLIC_ROUTES)


def is_protected_route(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PROTECTED_PREFIXES)


def request_token(request: Request) -> Optional[str]:
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("authorization", "")
    if auth_header:
        return auth_header.replace("Bearer ", "", 1)
    return None


def login_redirect(path: Optional[str] = None) -> RedirectResponse:
    url = "/login" if path is None else f"/login?redirect={quote(path, safe='/')}"
    return RedirectResponse(url=url, status_code=307)


class AuthGateMiddleware(BaseHTTPMiddleware):
    """
    Redirect unauthenticated page requests to the login page.

    Args:
        exclude_paths: extra path prefixes that bypass the gate (health checks, docs)
    """

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or [])

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        if path.startswith(PASSTHROUGH_PREFIXES) or (self.exclude_paths and path.startswith(self.exclude_paths)):
            return await call_next(request)

        if is_public_route(path):
            return await call_next(request)

        if not is_protected_route(path):
            logger.debug(f"🔒 Unknown page {path}, redirecting to login")
            return login_redirect()

        token = request_token(request)
        if not token:
            logger.info(f"🔒 No auth token for {path}, redirecting to login")
            return login_redirect(path)

        if len(token) <= MIN_TOKEN_LENGTH:
            logger.warning(f"⚠️ Malformed auth token for {path}, clearing cookie")
            response = login_redirect(path)
            response.delete_cookie(AUTH_COOKIE_NAME)
            return response

        return await call_next(request)
