import asyncio
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shortlink_app.config import settings
from shortlink_app.database.connection import engine, Base
from shortlink_app.api.v1 import admin, analytics, redirect, urls
from shortlink_app.click_processor.click_worker import ClickWorker
from shortlink_app.dependencies import get_queue
from shortlink_app.exceptions import ShortLinkError
from shortlink_app.logging_config import configure_logging

# Import models to ensure they're registered with Base
from shortlink_app.models import ShortURL, ClickEvent

configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger()

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the click worker next to the API and drain its queue on shutdown"""
    worker = None
    worker_task = None
    # Build the queue now so a Redis reachability check never runs inside a redirect
    queue = get_queue()

    if settings.click_worker_embedded:
        worker = ClickWorker(
            queue=queue,
            queue_name=settings.queue_name,
            batch_size=settings.queue_batch_size,
            poll_interval=settings.queue_worker_interval,
            max_retries=settings.click_record_retries,
        )
        worker_task = asyncio.create_task(worker.start())

    yield

    if worker is not None:
        worker.stop()
        try:
            await asyncio.wait_for(worker_task, timeout=settings.queue_worker_interval + 5)
        except asyncio.TimeoutError:
            logger.warning("Click worker did not stop in time, cancelled")
        await worker.drain()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Short links with per-platform redirect targets and click analytics",
    debug=settings.debug,
    lifespan=lifespan
)


@app.exception_handler(ShortLinkError)
async def handle_shortlink_error(request: Request, exc: ShortLinkError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(urls.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/admin/api/v1")
# Catch-all /{code}, must stay last
app.include_router(redirect.router)


def run():
    """Serve the app with uvicorn on the configured host and port"""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
