from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from tripsync.config import settings
from tripsync.database import db, create_backend
from tripsync.routers import rooms, members, plans, trips

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    db.use_backend(create_backend())
    if not settings.ai_enabled:
        logger.warning("Gemini is not configured; itineraries will use templates")
    yield
    # Shutdown
    pass

app = FastAPI(
    title="TripSync Group Trip Planner",
    description="Group trip rooms with preference mediation, plan scoring and voting",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(rooms.router, prefix="/api/rooms", tags=["rooms"])
app.include_router(plans.router, prefix="/api/rooms", tags=["plans"])
app.include_router(members.router, prefix="/api", tags=["members"])
app.include_router(trips.router, prefix="/api", tags=["trips"])

@app.get("/")
async def root():
    """Service banner"""
    return {"message": "TripSync Group Trip Planner API", "status": "running"}

@app.get("/health")
async def health_check():
    """Liveness check with the active storage backend and AI status"""
    return {
        "status": "healthy",
        "service": "tripsync-backend",
        "version": app.version,
        "storage": settings.storage_backend,
        "ai_enabled": settings.ai_enabled,
    }

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production
    )
