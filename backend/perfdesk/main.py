"""
FastAPI app: GET /social-trading serves the cached dashboard snapshot.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from perfdesk.api.routes import router
from perfdesk.config.settings import settings
from perfdesk.logging import configure_logging
from perfdesk.service import SnapshotService


def create_app(service: SnapshotService | None = None) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Trading Performance Snapshot")
    app.state.snapshot_service = service or SnapshotService()
    app.include_router(router)

    # the marketing site reads this from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    return app


if __name__ == "__main__":
    import os

    import uvicorn

    # built on startup, never at import
    uvicorn.run(
        "perfdesk.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=True,
    )
