from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from canteen.auth.resolver import resolve_principal
from canteen.core.errors import UnauthenticatedError
from canteen.schemas.response import error_body

BYPASS_PATHS = {"/", "/health", "/canteen/login"}
DOCS_PATHS = {"/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json"}


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=error_body(message),
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolves the bearer token into request.state.principal before routing.
    Auth settings and the key cache are read from app.state on every request.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in BYPASS_PATHS or path in DOCS_PATHS:
            return await call_next(request)

        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):].strip() if header.startswith("Bearer ") else ""
        if not token:
            return _unauthorized("missing or invalid auth header")

        state = request.app.state
        try:
            principal = await resolve_principal(token, state.admin_jwt, state.firebase, state.jwks)
        except UnauthenticatedError as e:
            return _unauthorized(e.message)

        request.state.principal = principal
        return await call_next(request)
