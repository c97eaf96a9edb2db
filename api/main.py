import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import uvicorn  # noqa: E402
from fastapi import FastAPI, Request, Response  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest  # noqa: E402
from starlette.exceptions import HTTPException as StarletteHTTPException  # noqa: E402
from starlette.middleware.base import BaseHTTPMiddleware  # noqa: E402

from api.cache import SnapshotStore, build_store  # noqa: E402
from api.middleware.cors import PermissiveCORSMiddleware  # noqa: E402
from api.routers import earthquakes  # noqa: E402
from api.scheduler import RefreshScheduler  # noqa: E402
from ingest.aggregate import Aggregator  # noqa: E402
from ingest.logger import setup_logger  # noqa: E402
from schemas.models import ServiceInfo  # noqa: E402

logger = setup_logger("api")
setup_logger("ingest")

PORT = int(os.getenv("PORT", "3000"))
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "1") == "1"


# =========================
# PROMETHEUS METRICS
# =========================

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        path = request.url.path
        method = request.method
        status = response.status_code

        REQUEST_COUNT.labels(method=method, path=path, status=status).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(process_time)

        return response


def create_app(
    store: SnapshotStore = None,
    aggregator: Aggregator = None,
    start_scheduler: bool = ENABLE_SCHEDULER,
) -> FastAPI:
    store = store if store is not None else build_store()
    aggregator = aggregator if aggregator is not None else Aggregator(store)
    scheduler = RefreshScheduler(aggregator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            scheduler.start()
        yield
        await scheduler.stop()

    app = FastAPI(
        title="PHIVOLCS Earthquakes API",
        version="0.2",
        description="Latest and previous-month PHIVOLCS earthquake listings as JSON, refreshed every two minutes.",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.aggregator = aggregator
    app.state.scheduler = scheduler

    app.add_middleware(PermissiveCORSMiddleware)
    app.add_middleware(MetricsMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Not Found" if exc.status_code == 404 else exc.detail
        return JSONResponse({"error": message}, status_code=exc.status_code)

    @app.get("/", response_model=ServiceInfo)
    def root():
        return ServiceInfo(
            message="PHIVOLCS earthquake data (latest + previous month)",
            endpoint="/api/earthquakes",
        )

    # Healthcheck
    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Prometheus format
    @app.get("/metrics")
    def metrics():
        data = generate_latest()
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    app.include_router(earthquakes.router)
    return app


app = create_app()


if __name__ == "__main__":
    logger.info(f"REST API running on http://localhost:{PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
