"""Route protection: gate dashboard, private and selected API paths behind a session."""

import logging
from urllib.parse import urlencode

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from auth.jwt import decode_token, extract_token

logger = logging.getLogger(__name__)

PROTECTED_PAGE_PREFIXES = ("/dashboard", "/profile", "/private")
PROTECTED_API_PREFIXES = (
    "/api/documents",
    "/api/generate-pdf",
    "/api/save-document",
    "/api/purchases",
    "/api/profile",
)
LOGIN_PATH = "/login"


def _matches(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(path == p or path.startswith(p + "/") for p in prefixes)


def is_protected(path: str) -> bool:
    return _matches(path, PROTECTED_PAGE_PREFIXES) or _matches(path, PROTECTED_API_PREFIXES)


def has_valid_session(request: Request) -> bool:
    token = extract_token(request)
    if not token:
        return False
    try:
        decode_token(token, expected_type="access")
    except HTTPException as exc:
        logger.info("Rejected session on %s: %s", request.url.path, exc.detail)
        return False
    return True


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Redirect anonymous browser requests to the login page; reject anonymous API calls."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_protected(path) or has_valid_session(request):
            return await call_next(request)

        if _matches(path, PROTECTED_PAGE_PREFIXES):
            return RedirectResponse(url=f"{LOGIN_PATH}?{urlencode({'next': path})}", status_code=302)
        return JSONResponse({"detail": "Authentication required"}, status_code=401)
