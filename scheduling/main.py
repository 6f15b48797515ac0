# scheduling/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scheduling.db import create_db_and_tables
from scheduling.routers import records_routes, scheduling_routes

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("Scheduling service ready")
    yield

app = FastAPI(title="Project Scheduling API", lifespan=lifespan)

app.include_router(records_routes.router)
app.include_router(scheduling_routes.router)

@app.get("/health")
def health_check():
    return {"status": "ok"}
