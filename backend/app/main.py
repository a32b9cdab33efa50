from fastapi import FastAPI
from app.core.db import init_db
from app.api.v1 import upload, process, results, videos, health
from app.core.config import settings
import app.core.logging_config  # noqa: F401
import os

app = FastAPI(title=settings.PROJECT_NAME)

@app.on_event("startup")
def on_startup():
    init_db()
    os.makedirs(settings.STORAGE_DIR, exist_ok=True)
    os.makedirs(settings.WORK_DIR, exist_ok=True)

@app.get("/")
def read_root():
    return {"message": "Welcome to FrameGrade API"}

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(upload.router, prefix="/api/upload", tags=["upload"])
app.include_router(process.router, prefix="/api/process", tags=["process"])
app.include_router(results.router, prefix="/api/results", tags=["results"])
app.include_router(videos.router, prefix="/api/videos", tags=["videos"])
