from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from src.api.models import NotFoundResponse
from src.api.routes import router, ASSISTANT_PATH
from src.core.config import get_settings
from src.services.upstream import UpstreamClient
import logging

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}
AVAILABLE_ENDPOINTS = ["GET /", f"POST {ASSISTANT_PATH}"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared upstream client at startup and close it on shutdown"""
    settings = get_settings()
    if not settings.UPSTREAM_API_KEY:
        logger.warning("UPSTREAM_API_KEY is not set; upstream calls will carry no Authorization header")

    app.state.upstream_client = UpstreamClient(
        api_key=settings.UPSTREAM_API_KEY, timeout=settings.UPSTREAM_TIMEOUT
    )
    logger.info(f"Upstream client ready for {settings.UPSTREAM_URL}")
    try:
        yield
    finally:
        await app.state.upstream_client.aclose()
        logger.info("Upstream client closed")


app = FastAPI(title="Avatar API Proxy", lifespan=lifespan)
app.include_router(router)


# CORS is applied by hand: every response carries the headers, and OPTIONS on
# any path is answered here without reaching the router.
@app.middleware("http")
async def apply_cors(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=200, media_type="application/json")
    else:
        response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    response.headers["Content-Type"] = "application/json"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # An unknown method on a known path is still an unmatched route
    if exc.status_code in (404, 405):
        body = NotFoundResponse(availableEndpoints=AVAILABLE_ENDPOINTS)
        return JSONResponse(status_code=404, content=body.model_dump())
    return JSONResponse(
        status_code=exc.status_code, content={"error": str(exc.detail), "success": False}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    # Served from ServerErrorMiddleware, outside apply_cors
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "success": False},
        headers=CORS_HEADERS,
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Avatar API Proxy server running on port {settings.PORT}")
    logger.info(f"Health check: http://localhost:{settings.PORT}/")
    logger.info(f"API endpoint: http://localhost:{settings.PORT}{ASSISTANT_PATH}")

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
