import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import admin_routes, routes
from .config import DB_AUTO_CREATE, SERVICE_NAME
from .db import create_tables
from .errors import NegotiationError
from .logging_config import configure_logging
from .middleware import RequestLoggingMiddleware
from .publisher import publisher

configure_logging()
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "System", "description": "Operational endpoints."},
    {"name": "Negotiation", "description": "Technicians, bookings, chat transcript and price negotiation."},
    {"name": "Admin", "description": "Platform statistics and technician verification."},
]

app = FastAPI(title="FixMate Negotiation Service", openapi_tags=OPENAPI_TAGS)

app.add_middleware(RequestLoggingMiddleware)
app.include_router(routes.router, tags=["Negotiation"])
app.include_router(admin_routes.router, tags=["Admin"])


@app.exception_handler(NegotiationError)
async def negotiation_error_handler(request: Request, exc: NegotiationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health", tags=["System"])
async def health():
    return {"status": "ok", "service": SERVICE_NAME, "events_enabled": publisher.enabled}


@app.on_event("startup")
async def startup():
    if DB_AUTO_CREATE:
        await create_tables()

    # never crash the service if RabbitMQ is temporarily unavailable
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)


@app.on_event("shutdown")
async def shutdown():
    try:
        await publisher.close()
    except Exception as e:
        logger.warning("RabbitMQ close failed: %s", e)
