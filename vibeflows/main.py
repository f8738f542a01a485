from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vibeflows.core.env_loader import load_project_env

load_project_env()

from vibeflows.api.routes_ai import router as ai_router
from vibeflows.api.routes_chats import router as chats_router
from vibeflows.api.routes_health import router as health_router
from vibeflows.api.routes_messages import router as messages_router
from vibeflows.core.settings import get_settings
from vibeflows.services.chat_store import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="VibeFlows Assistant Relay", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(ai_router)
app.include_router(chats_router)
app.include_router(messages_router)
