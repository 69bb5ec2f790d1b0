# main.py
import logging
from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.constants import InternalURIs
from util.enums import Environment, Color, ErrorMessage
from util.errors import UPSTREAM_ERRORS
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.clients import close_clients, get_redis
from util.logger import init_logger

logger = logging.getLogger(__name__)


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    if settings.RATE_LIMIT_ENABLED:
        try:
            redis = await get_redis()
            await FastAPILimiter.init(redis, identifier=_real_ip)
        except Exception as e:
            print("Failed to connect to Redis:", e)
            raise
    print(f"{Color.BLUE}Server Started{Color.RESET}")

    try:
        yield
    finally:
        try:
            await close_clients()
        except Exception as e:
            print("Error closing clients:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,  # Allow cookies and other credentials
    allow_methods=["GET", "POST", "DELETE"],  # Allowed HTTP Methods
    allow_headers=["Authorization", "Content-Type", "Accept"],  # Allowed HTTP Headers
)


@app.get(InternalURIs.INDEX, response_class=PlainTextResponse)
async def index():
    return f"Job Scheduler API {settings.API_VERSION}"


@app.get(InternalURIs.HEALTH)
async def healthz():
    return {"ok": True}


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {settings.RATE_LIMIT_SECONDS}s.",
        },
        headers={"Retry-After": str(settings.RATE_LIMIT_SECONDS)},
    )


async def upstream_error_handler(request: Request, exc: Exception):
    logger.error(
        "upstream.error method=%s path=%s err=%s msg=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )
    return JSONResponse(
        status_code=ErrorMessage.INTERNAL_ERROR.value.http_status,
        content={
            "ok": False,
            "error": "upstream_error",
            "message": ErrorMessage.INTERNAL_ERROR.value.message,
        },
    )


for _exc in UPSTREAM_ERRORS:
    app.add_exception_handler(_exc, upstream_error_handler)

routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=reload)
