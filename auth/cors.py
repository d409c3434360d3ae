from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

DEFAULT_CORS_ORIGINS = {
    "https://claude.ai",
    "https://claude.com",
}
ANY_ORIGIN = "*"


def _allowed_origin_header(origin: str | None, allowed_origins: set[str]) -> str | None:
    if not origin:
        return None
    if ANY_ORIGIN in allowed_origins:
        return ANY_ORIGIN
    if origin in allowed_origins:
        return origin
    return None


def apply_cors_response(
    request: Request,
    response: Response,
    allowed_origins: set[str],
) -> Response:
    allow_origin = _allowed_origin_header(request.headers.get("origin"), allowed_origins)
    if allow_origin is not None:
        response.headers["Access-Control-Allow-Origin"] = allow_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
        if allow_origin != ANY_ORIGIN:
            response.headers["Vary"] = "Origin"
    return response


def mount_preflight_route(mcp, path: str, allowed_origins: set[str]) -> None:
    @mcp.custom_route(path, methods=["OPTIONS"])
    async def preflight_route(request: Request) -> Response:
        return apply_cors_response(request, Response(status_code=204), allowed_origins)


def cors_error_response(
    request: Request,
    allowed_origins: set[str],
    code: str,
    description: str,
    status_code: int,
) -> Response:
    return apply_cors_response(
        request,
        JSONResponse(
            {"error": code, "error_description": description},
            status_code=status_code,
        ),
        allowed_origins,
    )


def cors_text_response(
    request: Request,
    allowed_origins: set[str],
    message: str,
    status_code: int,
) -> Response:
    return apply_cors_response(
        request,
        PlainTextResponse(message, status_code=status_code),
        allowed_origins,
    )
