'''
FastAPI application for the TutorAid billing back-office.
'''
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn

from .database.engine import create_db_engine_and_session_factory, create_tables, dispose_db_engine
from .common.logger import log
from .common.config import settings
from .api import billing, currencies

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})...")
    create_db_engine_and_session_factory(settings.database_url)
    if settings.database_url.startswith("sqlite"):
        await create_tables()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of local frontend
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:9002",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running", "environment": settings.ENVIRONMENT}

app.include_router(billing.router)
app.include_router(currencies.router)


def run():
    """Entry point for the `tutoraid-backend` console script."""
    uvicorn.run("tutoraid_backend.main:app", host="0.0.0.0", port=8000)
