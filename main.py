"""FastAPI app entry point for the AI DM server.

Run:
    uvicorn main:app --reload
or:
    python main.py
"""

import logging

import uvicorn
from fastapi import FastAPI

from api.state import router as state_router
from api.tools import router as tools_router
from config import HOST, LOG_LEVEL, PORT, SERVER_NAME, SERVER_VERSION, configure_logging
from engine.state import StateStore

configure_logging()
logger = logging.getLogger("aidm.server")


def create_app() -> FastAPI:
    """Build the app with a fresh, empty game session."""
    app = FastAPI(
        title=SERVER_NAME,
        description="Dice, combat and game-state tools for an AI Dungeon Master",
        version=SERVER_VERSION,
    )
    app.state.store = StateStore()

    app.include_router(tools_router, tags=["Tools"])
    app.include_router(state_router, prefix="/state", tags=["State"])

    @app.get("/")
    def root() -> dict:
        """Root endpoint returning server info."""
        return {"name": SERVER_NAME, "version": SERVER_VERSION, "status": "running"}

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint."""
        return {"healthy": True}

    logger.info("%s %s ready", SERVER_NAME, SERVER_VERSION)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())
