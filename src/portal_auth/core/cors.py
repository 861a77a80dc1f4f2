from __future__ import annotations

from fastapi import FastAPI, Request, Response

# Browser clients call the functions from any origin with the platform's API key headers.
CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def install_cors(app: FastAPI) -> None:
    """Answer every preflight with an empty 200 and stamp CORS headers on all other responses."""

    @app.middleware("http")
    async def _cors(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
