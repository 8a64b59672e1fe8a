import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.chat import router as chat_router
from app.api.conversation import router as conversation_router
from app.api.interview_prep import router as interview_prep_router
from app.dependencies import get_gateway
from app.errors import ServiceError, UnexpectedInternalError
from app.rate_limit import FixedWindowRateLimiter, is_exempt, request_identity
from app.services.openai_service import OpenAIGateway
from app.system_metrics import get_metrics_snapshot, increment_metric
from core.config import (
    LOG_LEVEL,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SEC,
    SERVICE_NAME,
    get_allowed_origins,
)
from core.logger import configure_logging

configure_logging(LOG_LEVEL)
logger = logging.getLogger("app.main")

_allowed_origins = get_allowed_origins()
rate_limiter = FixedWindowRateLimiter(window_sec=RATE_LIMIT_WINDOW_SEC, max_requests=RATE_LIMIT_MAX_REQUESTS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    gateway = get_gateway()
    logger.info("[SYSTEM] upstream configured=%s", gateway.available)
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)
    logger.info(
        "[SYSTEM] rate_limit enabled=%s window_sec=%s max_requests=%s",
        RATE_LIMIT_ENABLED,
        RATE_LIMIT_WINDOW_SEC,
        RATE_LIMIT_MAX_REQUESTS,
    )
    yield
    logger.info("[SYSTEM] shutdown complete")


app = FastAPI(title="ScreenMe Interview API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not RATE_LIMIT_ENABLED or is_exempt(request):
        return await call_next(request)

    blocked, retry_after = await rate_limiter.check(request_identity(request), time.time())
    if blocked:
        increment_metric("rate_limited_requests")
        return JSONResponse(
            status_code=429,
            content={
                "error": f"Too many requests. Please wait {retry_after} seconds before trying again.",
                "code": "RATE_LIMIT_EXCEEDED",
                "retry_after_sec": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    return await call_next(request)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = str(request.headers.get("x-request-id") or "").strip() or uuid.uuid4().hex[:16]
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error | path=%s", request.url.path)
    error = UnexpectedInternalError(details=exc.__class__.__name__)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


app.include_router(conversation_router)
app.include_router(interview_prep_router)
app.include_router(chat_router)


@app.get("/healthz")
async def healthz(gateway: OpenAIGateway = Depends(get_gateway)):
    return {"status": "ok", "service": SERVICE_NAME, "upstream_configured": gateway.available}


@app.get("/api/system/metrics")
async def system_metrics(gateway: OpenAIGateway = Depends(get_gateway)):
    return get_metrics_snapshot(extra={"upstream_configured": gateway.available})
