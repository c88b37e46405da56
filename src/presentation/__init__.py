import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth_api import router as auth_router
from .user_api import router as user_router
from .task_api import router as task_router
from .notification_api import router as notification_router
from .realtime_api import router as realtime_router
from core.config import get_settings
from core.logging_setup import setup_logging
from Data.database import init_db
from services.realtime import ConnectionRegistry, PushDispatcher

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: logging, DB tables, and the process-wide connection registry
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    init_db()
    registry = ConnectionRegistry()
    app.state.registry = registry
    app.state.dispatcher = PushDispatcher(registry)
    logger.info("%s started", settings.app_name)
    yield
    logger.info("%s stopping with %d live connections",
                settings.app_name, len(registry))


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
app.include_router(user_router, prefix="/users", tags=["Users"])
app.include_router(task_router, prefix="/tasks", tags=["Tasks"])
app.include_router(notification_router, prefix="/notifications", tags=["Notifications"])
app.include_router(realtime_router, tags=["Real-time"])
