"""Agentboard FastAPI backend: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend import config
from backend.routers.chats import chats_router, sessions_router
from backend.routers.git import git_router
from backend.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("agentboard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info(f"Agentboard backend starting up (projects dir: {config.PROJECTS_DIR})")
    initialize_observability(app)

    yield

    logger.info("Agentboard backend shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="Agentboard API",
    description="Read-only session log API for the Agentboard dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the Vite dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chats_router)
app.include_router(sessions_router)
app.include_router(git_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "projectsDir": str(config.PROJECTS_DIR),
        "projectsDirExists": config.PROJECTS_DIR.is_dir(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host=config.HOST, port=config.PORT)
