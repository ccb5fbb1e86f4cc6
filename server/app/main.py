import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.v1 import status
from app.api.v1.api_v1 import api_router
from app.core.config import settings
from app.core.exceptions import TroveError
from app.core.logging import configure_logging
from app.db.db import SessionLocal, engine, init_models
from app.jobs.purge import schedule_purge
from app.queue.broker import JobBroker
from app.worker.runner import build_worker

logger = logging.getLogger(__name__)

broker = JobBroker(
    SessionLocal,
    queue_name=settings.QUEUE_NAME,
    remove_on_complete=settings.JOB_REMOVE_ON_COMPLETE,
    remove_on_fail=settings.JOB_REMOVE_ON_FAIL,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    if settings.AUTO_CREATE_TABLES:
        await init_models(engine)

    worker = None
    if settings.RUN_WORKER:
        worker = build_worker(SessionLocal, broker=broker)
        await worker.start()

    purge_task = None
    if settings.PURGE_ENABLED:
        purge_task = schedule_purge(SessionLocal, broker, settings.RETENTION_DAYS, settings.PURGE_HOUR_UTC)

    yield

    if purge_task is not None:
        purge_task.cancel()
        try:
            await purge_task
        except asyncio.CancelledError:
            pass
    if worker is not None:
        await worker.stop()
    await engine.dispose()


app = FastAPI(
    title="Trove API",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.broker = broker

app.include_router(status.health_router)
app.include_router(api_router, prefix="/api")


@app.exception_handler(TroveError)
async def trove_error_handler(request: Request, exc: TroveError):
    status_code = exc.status_code or 500
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"success": False, "error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal Server Error"})


@app.get("/")
def root():
    return {"message": "Trove API is running."}
