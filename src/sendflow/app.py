"""
sendflow/app.py

FastAPI application entrypoint for the SendFlow money-movement service.

This module wires together:
- Logging configuration (rotating files under SENDFLOW_LOG_DIR)
- CORS and request logging middleware
- SendFlowError -> {success: false, message} exception handlers
- Routers under sendflow/api/ (bill payments, transfers, pending transfers, fees)
"""

import time

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from sendflow import __version__
from sendflow.api.bills import router as bills_router
from sendflow.api.claims import router as claims_router
from sendflow.api.fees import router as fees_router
from sendflow.api.transfers import router as transfers_router
from sendflow.config import BACKEND_SQL, get_settings
from sendflow.errors import RollbackFailure, SendFlowError
from sendflow.logging_config import get_logger, setup_logging

# Load environment variables early
load_dotenv(find_dotenv(usecwd=True), override=False)

# Configure logging before creating the app
setup_logging()
logger = get_logger("sendflow")

app = FastAPI(title="SendFlow API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    if request.method in ("POST", "PUT", "PATCH"):
        try:
            payload = (await request.body()).decode(errors="ignore")[:200]
        except Exception:
            logger.exception("Failed to read request body for logging")
            payload = "?"
        logger.info("%s %s payload=%s", request.method, request.url.path, payload)
    response = await call_next(request)
    logger.info(
        "%s %s -> %s in %.1f ms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


@app.exception_handler(SendFlowError)
async def sendflow_error_handler(request: Request, exc: SendFlowError):
    if isinstance(exc, RollbackFailure):
        logger.critical("%s %s: %s details=%s", request.method, request.url.path, exc.message, exc.details)
    elif exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid request: {field} {first.get('msg', '')}".strip() if field else "Invalid request body"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.get("/api/health")
async def health():
    return {"status": "healthy"}


app.include_router(bills_router)
app.include_router(transfers_router)
app.include_router(claims_router)
app.include_router(fees_router)


@app.on_event("startup")
async def on_startup():
    settings = get_settings()
    logger.info("SendFlow starting up (backend=%s)", settings.backend)
    if settings.backend == BACKEND_SQL and settings.db_create_all:
        from sendflow.db.session import build_engine, build_sessionmaker, create_all
        from sendflow.store import SqlStore

        engine = build_engine(settings.database_url)
        await create_all(engine)
        app.state.store = SqlStore(build_sessionmaker(engine), engine=engine)
        logger.info("Created tables on %s", settings.database_url)


@app.on_event("shutdown")
async def on_shutdown():
    store = getattr(app.state, "store", None)
    if store is not None:
        try:
            await store.close()
        except Exception:
            logger.exception("Error closing store on shutdown")
    logger.info("SendFlow shutting down")


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("sendflow.app:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
