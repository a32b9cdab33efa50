from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from app.core.db import get_session
from app.core.config import settings
from app.services.queue import redis_conn
from app.models import Video
from app.core.clock import utc_now
import shutil

router = APIRouter()

@router.get("/")
def health_check():
    """basic liveness check"""
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": "framegrade-backend"
    }

@router.get("/ready")
def readiness_check(session: Session = Depends(get_session)):
    """comprehensive readiness check - verifies all dependencies"""
    checks = {}
    all_healthy = True

    # check database
    try:
        session.exec(select(Video).limit(1))
        checks["database"] = {"status": "healthy", "message": "connected"}
    except Exception as e:
        checks["database"] = {"status": "unhealthy", "message": str(e)}
        all_healthy = False

    # check redis
    try:
        redis_conn.ping()
        checks["redis"] = {"status": "healthy", "message": "connected"}
    except Exception as e:
        checks["redis"] = {"status": "unhealthy", "message": str(e)}
        all_healthy = False

    # check media tools
    missing = [tool for tool in (settings.FFMPEG_BIN, settings.FFPROBE_BIN) if not shutil.which(tool)]
    if missing:
        checks["ffmpeg"] = {"status": "unhealthy", "message": f"not found: {', '.join(missing)}"}
        all_healthy = False
    else:
        checks["ffmpeg"] = {"status": "healthy", "message": "available"}

    # check inference credentials
    if settings.OPENAI_API_KEY:
        checks["inference"] = {"status": "healthy", "message": "configured"}
    else:
        checks["inference"] = {"status": "warning", "message": "OPENAI_API_KEY not set"}

    return {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": utc_now().isoformat(),
        "checks": checks
    }
