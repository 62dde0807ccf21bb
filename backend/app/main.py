from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import documents, readers, sprints
from app.core.config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL
from app.core.database import create_db_and_tables
from app.core.logging import configure_logging

configure_logging(level=LOG_LEVEL, json_format=LOG_FORMAT == "json")


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(
    title="Reading Sprint API",
    description="API for analyzing documents, planning reading sprints, and tracking reader progress.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(documents.router)
app.include_router(sprints.router)
app.include_router(readers.router)


@app.get("/")
def read_root() -> Dict[str, str]:
    """Root endpoint to check API status.

    Returns:
        Dict[str, str]: Status message and link to docs.
    """
    return {"status": "API is ready", "docs": "/docs"}
