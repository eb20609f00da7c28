"""
Outreach Pipeline - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from outreach_pipeline.config import settings
from outreach_pipeline.database import init_db

# Import all API routers
from outreach_pipeline.api import templates, outreach

# Import models to ensure they are registered with SQLModel
from outreach_pipeline.models import (
    Contact, Company, Profile, MessageTemplate, OutreachEvent, Message
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    yield
    # Shutdown


app = FastAPI(
    title="Outreach Pipeline API",
    description="Profile matching, template sequencing and engagement state for LinkedIn outreach",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(templates.router)
app.include_router(outreach.router)


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "healthy",
        "version": "1.0.0"
    }
