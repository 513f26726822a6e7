"""
Elora Assistant: Main Application
FastAPI app. Mounts routers, CORS, error handlers.

Every error leaves as {"error": "<safe message>"}. Tracebacks stay in the log.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from elora.config import CORS_ORIGINS, LOG_LEVEL, OPENAI_API_KEY, LLM_MODEL, PORT, VERSION
from elora.errors import GENERIC_INTERNAL_MESSAGE, SAFE_MESSAGES, TutorError

logger = logging.getLogger("elora")


# ─── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: configure logging, report config. Shutdown: nothing to clean."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    if not OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set: every model call will fail")
    logger.info(f"Elora Assistant v{VERSION} ready (model={LLM_MODEL})")
    yield
    logger.info("Shutting down")


# ─── App ─────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Elora Assistant",
    description="Policy-governed tutoring responses",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error Handlers ──────────────────────────────────────────────────────────

@app.exception_handler(TutorError)
async def tutor_error_handler(request: Request, exc: TutorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} → {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Routing errors (404, 405 with its Allow header) keep the {"error"} shape
ROUTING_ERROR_CODES = {404: "not_found", 405: "method_not_allowed"}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = ROUTING_ERROR_CODES.get(exc.status_code)
    message = SAFE_MESSAGES[code] if code else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": SAFE_MESSAGES["invalid_request"]})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": GENERIC_INTERNAL_MESSAGE})


# Mount routers
from elora.routers import assistant, auth
app.include_router(assistant.router)
app.include_router(auth.router)
app.include_router(auth.teacher_router)


# Health check (both /health and /healthz)
@app.get("/health")
@app.get("/healthz")
async def health():
    return {"status": "ok", "version": VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
