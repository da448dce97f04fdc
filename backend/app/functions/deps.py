from __future__ import annotations
import hmac
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from app.config import FUNCTIONS_API_KEY

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
ALLOWED_HEADERS = [h.strip() for h in CORS_HEADERS["Access-Control-Allow-Headers"].split(",")]


def cors_json(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


def _presented_key(request: Request) -> Optional[str]:
    key = request.headers.get("apikey")
    if key:
        return key
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return None


def key_error(request: Request) -> Optional[JSONResponse]:
    """401 response when FUNCTIONS_API_KEY is configured and not presented."""
    if not FUNCTIONS_API_KEY:
        return None
    presented = _presented_key(request)
    if presented and hmac.compare_digest(presented, FUNCTIONS_API_KEY):
        return None
    return cors_json({"error": "Invalid or missing API key"}, status_code=401)
