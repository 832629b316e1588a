import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hrbot import __version__
from hrbot.config import settings
from hrbot.database import init_db
from hrbot.logging_config import get_logger, setup_logging
from hrbot.routers import slack_events
from hrbot.services.message_service import get_message_processor
from hrbot.socket_mode import SocketModeRunner

setup_logging(settings.log_level)

logger = get_logger("main")

socket_mode = SocketModeRunner()


def _is_socket_mode_allowed() -> bool:
    return not os.environ.get("PYTEST_CURRENT_TEST")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if _is_socket_mode_allowed():
        await socket_mode.start()
    try:
        yield
    finally:
        await socket_mode.stop()
        await get_message_processor().drain()


app = FastAPI(
    title="hr_chatbot",
    description="Relays Slack messages to an OpenAI HR assistant",
    version=__version__,
    lifespan=lifespan,
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(slack_events.router)


@app.get("/")
async def root():
    return {"message": "hr_chatbot backend starting...", "version": __version__}


@app.get("/health")
async def health():
    return {"status": "ok"}
