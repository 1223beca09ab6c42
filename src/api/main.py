"""
FastAPI application for the events assistant.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .deps import build_agent_and_store
from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load events and build the agent on startup; drop chat sessions on shutdown."""
    agent, retriever, store, events_loaded = build_agent_and_store()
    app.state.agent = agent
    app.state.retriever = retriever
    app.state.store = store
    app.state.events_loaded = events_loaded
    app.state.sessions = {}
    if agent is None:
        logger.warning("Starting without events; chat and search will return 503")
    else:
        logger.info(
            "Serving %d events (generation %s)",
            events_loaded,
            "enabled" if agent.generator is not None else "disabled",
        )
    yield
    app.state.sessions.clear()


app = FastAPI(
    title="Local Events Assistant API",
    description="Chat and search over locally scraped event posters",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(router)
