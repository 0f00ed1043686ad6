from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from usagewatch.database import Base, SharedBase, engine, shared_engine
from usagewatch.models import *  # register every model before create_all
from usagewatch.routers import deleted_apps, new_apps, usage, reconciliation, notifications
from usagewatch.services.container import build_services

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# DB initialisation
def init_db():
    logger.info("Creating DB tables...")
    Base.metadata.create_all(bind=engine)
    SharedBase.metadata.create_all(bind=shared_engine)
    logger.info("DB table creation completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    services = build_services()
    app.state.services = services
    services.scheduler.start()
    try:
        yield
    finally:
        services.scheduler.stop()


# FastAPI APP
app = FastAPI(
    title="UsageWatch",
    description="App inventory reconciliation and usage aggregation service",
    version="1.0.0",
    lifespan=lifespan,
)


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Routers (endpoint prefix: /api)
app.include_router(deleted_apps.router, prefix="/api/deleted-apps", tags=["Deleted apps"])
app.include_router(new_apps.router, prefix="/api/new-apps", tags=["New apps"])
app.include_router(usage.router, prefix="/api/usage", tags=["Usage"])
app.include_router(reconciliation.router, prefix="/api/reconciliation", tags=["Reconciliation"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


# Health check
@app.get("/")
def root():
    return {"status": "ok", "message": "Backend is running."}
