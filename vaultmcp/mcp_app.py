from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .constants import APP_VERSION, HEALTH_PATH

if TYPE_CHECKING:
    from fastmcp import FastMCP


def mount_health_route(mcp: "FastMCP", *, auth_mode: str) -> None:
    from starlette.requests import Request
    from starlette.responses import JSONResponse, Response

    @mcp.custom_route(HEALTH_PATH, methods=["GET"])
    async def health_route(request: Request) -> Response:
        del request
        return JSONResponse(
            {
                "status": "healthy",
                "version": APP_VERSION,
                "auth_mode": auth_mode,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )
