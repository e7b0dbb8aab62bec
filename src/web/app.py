"""
FastAPI application factory for the detection engine.

Routes:
- /api/status, /api/stats, /api/detections/recent -> read engine state
- /api/detect, /api/polling/*, /api/camera/*, /api/image, /api/auth/retry -> drive the engine
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runtime.session import DetectionSession
from .routes import api


def create_app(session: DetectionSession) -> FastAPI:
    """Create the FastAPI app bound to one detection session."""
    app = FastAPI(
        title="Detection Engine",
        version="0.1.0",
        description="Camera and image detection orchestration against a remote detection service",
    )

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session = session
    app.include_router(api.router, prefix="/api")
    return app
