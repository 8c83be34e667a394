"""
FastAPI backend server for the Claims Workbench.
This provides REST API endpoints for the Next.js frontend.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from claims_workbench import __version__
from claims_workbench.claims import get_claims_api_router
from claims_workbench.config import load_engine_config, load_settings
from claims_workbench.utils import setup_logging

# Setup logging
logger = setup_logging()

# Initialize FastAPI app
app = FastAPI(
    title="Claims Workbench API",
    description="REST API for AI-assisted vehicle damage assessment and claim routing",
    version=__version__,
)

# Configure CORS for frontend access
# In production, replace with your actual frontend domain(s)
allowed_origins = [
    "http://localhost:3000",  # Next.js dev server
    "http://127.0.0.1:3000",
]

frontend_url = os.getenv("FRONTEND_URL")
if frontend_url:
    allowed_origins.append(frontend_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(get_claims_api_router())
logger.info("Damage assessment API router registered")


@app.on_event("startup")
async def startup_event():
    """Fail fast on a broken policy config instead of on the first request."""
    settings = load_settings()
    setup_logging(settings.log_level)
    try:
        config = load_engine_config(settings)
    except Exception as e:
        logger.error("Failed to load policy config: %s", e)
        raise
    logger.info(
        "Policy config loaded from %s (fast-track <= %s cents, escalation > %s cents)",
        settings.policy_config_path or "defaults",
        config.fast_track.max_cost,
        config.escalation.high_exposure_threshold,
    )


@app.get("/api/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "version": __version__}


# Entry point for running with uvicorn directly
def main():
    """Entry point for the API server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
