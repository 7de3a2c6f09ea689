from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from queuedesk.core.config import settings
from queuedesk.core.exceptions import StoreError
from queuedesk.core.logger import logger
from queuedesk.core.redis import redis_client
from queuedesk.core.scheduler import AutoAssignRunner, start_scheduler, shutdown_scheduler
from queuedesk.db.init_db import init_db
from queuedesk.db.session import async_session, engine
from queuedesk.middleware.log_middleware import LogMiddleware

@asynccontextmanager
async def lifespan(app: FastAPI):
    async with async_session() as session:
        await init_db(engine, session)

    if settings.SCHEDULER_ENABLED:
        lock_client = redis_client if settings.AUTO_ASSIGN_LOCK_ENABLED else None
        start_scheduler(AutoAssignRunner(async_session, lock_client))

    yield

    shutdown_scheduler()
    await redis_client.close()
    await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

from fastapi.middleware.cors import CORSMiddleware

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    error = StoreError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

@app.get("/")
async def root():
    return {"message": "Welcome to QueueDesk API"}

from queuedesk.api.api import api_router, legacy_router
app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(legacy_router, prefix="/api")
