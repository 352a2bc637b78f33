"""
Bearer-token authentication for the agent routes.
"""
import logging
from typing import Any, Dict

import jwt
from fastapi import HTTPException, Request

from mcp_devops.config import settings

logger = logging.getLogger(__name__)

SYSTEM_USER = {"id": "system", "role": "admin"}


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail={"error": "Unauthorized", "message": message})


def require_auth(request: Request) -> Dict[str, Any]:
    """
    Resolve the caller from the Authorization header.

    In development the static MCP_SERVER_TOKEN is accepted; otherwise the
    token must be an HS256 JWT signed with JWT_SECRET.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise _unauthorized("Authorization header required")

    parts = header.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        raise _unauthorized("Token required")

    if settings.APP_ENV == "development" and settings.MCP_SERVER_TOKEN and token == settings.MCP_SERVER_TOKEN:
        return dict(SYSTEM_USER)

    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
    except jwt.PyJWTError as e:
        logger.error(f"Authentication failed: {e}")
        raise _unauthorized("Invalid token")
