from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from rips_export.config import get_services, prime_catalog_from_store
from rips_export.core.logging_utils import (
    clear_log_context,
    log_event,
    pop_request_metrics_summary,
    set_request_id,
)

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_event(component="app", event="startup")
    get_services()  # Trigger loading
    await prime_catalog_from_store()
    yield
    log_event(component="app", event="shutdown")


def create_app() -> FastAPI:
    app = FastAPI(
        title="RIPS Export API",
        description="RIPS and clinical-summary export for physiotherapy records",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, specify the frontend origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid4().hex
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            # Stage metrics not reported by a pipeline are dropped with the request.
            pop_request_metrics_summary(request_id)
            clear_log_context()
        response.headers["x-request-id"] = request_id
        return response

    return app
