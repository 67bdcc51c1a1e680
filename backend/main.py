from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import config
logging.basicConfig(level=config.LOG_LEVEL)

from database import async_session, create_tables
from errors import NotFoundError, StorageError, ValidationError
from services.sweeper import AlarmSweeper, NotificationSweeper, LoggingNotifier
from routers.profiles import router as profiles_router
from routers.medicines import router as medicines_router
from routers.schedules import router as schedules_router
from routers.alarms import router as alarms_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    app.state.alarm_sweeper = AlarmSweeper(async_session)
    app.state.notification_sweeper = NotificationSweeper(async_session, LoggingNotifier())
    yield
    # In-flight sweeps are allowed to finish.
    await app.state.alarm_sweeper.stop()
    await app.state.notification_sweeper.stop()


app = FastAPI(title="Medicine Reminder API", lifespan=lifespan)

# Include routers from separate modules.
app.include_router(profiles_router, prefix="/api")
app.include_router(medicines_router, prefix="/api")
app.include_router(schedules_router, prefix="/api")
app.include_router(alarms_router, prefix="/api")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable, please try again"})


@app.get("/api/hello")
def read_root():
    return {"message": "Hello from the Medicine Reminder API"}
