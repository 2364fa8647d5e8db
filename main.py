from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

import logging
import os
import time

from db import Base, SessionLocal, engine
from dependencies import get_db
from errors import ConflictError, ValidationFailed
from routers import ALL_ROUTERS

import orm  # noqa: F401  registers the tables on Base.metadata

app = FastAPI(title="AssetFlow API")

Base.metadata.create_all(bind=engine)

# -----------------------
# Logging
# -----------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("app")

cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = int((time.time() - start) * 1000)
    logger.info(
        "method=%s path=%s status=%s elapsed_ms=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response

# -----------------------
# Errors
# -----------------------
LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}

def _field_name(loc) -> str | None:
    parts = [str(p) for p in loc if p not in LOCATION_PREFIXES]
    return ".".join(parts) or None

def _validation_response(errors: list[dict]) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": "Validation failed", "errors": errors})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _validation_response(
        [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    )

@app.exception_handler(ValidationError)
async def schema_validation_handler(request: Request, exc: ValidationError):
    return _validation_response(
        [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    )

@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return _validation_response(exc.as_errors())

@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message})

@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

for router in ALL_ROUTERS:
    app.include_router(router)

@app.get("/")
def root():
    return {"message": "AssetFlow API", "docs": "/docs"}

@app.get("/health")
def health():
    return {"status": "ok"}
