import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from geoplaces.core.config import settings
from geoplaces.core.db_connection import db_connection
from geoplaces.core.error_handlers import register_error_handlers
from geoplaces.core.logger import logs
from geoplaces.routes.places_route import router as places_router
from geoplaces.services.access_recorder import drain_background_tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORAGE_MODE == "mongodb":
        await db_connection.ensure_indexes()
    logs.log(logging.INFO, f"Places service started (storage={settings.STORAGE_MODE})")
    yield
    # Let pending view recordings finish before the loop goes away
    await drain_background_tasks()
    db_connection.close()


app = FastAPI(title="GeoPlaces", lifespan=lifespan)
register_error_handlers(app)
app.include_router(places_router)

# --- Root Endpoint ---
@app.get("/")
async def root():
    return {
        "message": "Welcome to GeoPlaces API",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "resolve": "/places/resolve",
            "nearby": "/places/nearby",
            "ingest": "/places/ingest",
            "docs": "/docs"
        },
        "version": "1.0.0"
    }

# --- Health Check ---
@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "GeoPlaces", "storage": settings.STORAGE_MODE}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("geoplaces.main:app", host="0.0.0.0", port=8000, reload=True)
