# api/middleware/cors.py
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """Adds `*` CORS headers to every response and answers any OPTIONS with 204."""

    async def dispatch(self, request: Request, call_next):
        # Preflight never reaches the routes
        if request.method.upper() == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)

        response.headers.update(CORS_HEADERS)
        return response
