import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlmodel import Session
from app.config import ADMIN_USERNAME, ADMIN_PASSWORD
from app.database import create_db_and_tables, engine
from app.exceptions import MatchTrackerException
from app.logging_config import setup_logging
from app.services.auth import ensure_admin

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables and the bootstrap admin
    create_db_and_tables()
    with Session(engine) as db:
        ensure_admin(db, ADMIN_USERNAME, ADMIN_PASSWORD)
    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title="Matchday Tracker",
    description="Track tournament matches, live events, lineups and league standings",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(MatchTrackerException)
async def match_tracker_exception_handler(request: Request, exc: MatchTrackerException):
    """Render core errors as {"error": kind, "detail": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message}
    )


# Include routers
from app.routers import auth, admin, matches, lineups, standings

app.include_router(auth.router, tags=["auth"])
app.include_router(admin.router, tags=["admin"])
app.include_router(matches.router, tags=["matches"])
app.include_router(lineups.router, tags=["lineups"])
app.include_router(standings.router, tags=["standings"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
