import os

class Settings:
    PROJECT_NAME: str = "FrameGrade"
    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://postgres:postgres@db:5432/framegrade")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # storage paths
    DATA_DIR: str = os.getenv("DATA_DIR", "/data")
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", os.path.join(DATA_DIR, "objects"))
    WORK_DIR: str = os.getenv("WORK_DIR", os.path.join(DATA_DIR, "processing"))
    LOG_DIR: str = os.getenv("LOG_DIR", "/var/log/framegrade")

    # inference settings
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    VISION_MODEL: str = os.getenv("VISION_MODEL", "gpt-4o")
    RATING_MODEL: str = os.getenv("RATING_MODEL", "gpt-4o")
    TRANSCRIPTION_MODEL: str = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")

    # pipeline settings
    MAX_PROCESSING_SECONDS: float = float(os.getenv("MAX_PROCESSING_SECONDS", "600"))
    FRAME_DELAY_SECONDS: float = float(os.getenv("FRAME_DELAY_SECONDS", "0.1"))  # inference rate limit throttle
    FFMPEG_BIN: str = os.getenv("FFMPEG_BIN", "ffmpeg")
    FFPROBE_BIN: str = os.getenv("FFPROBE_BIN", "ffprobe")

    # upload limits
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))
    ALLOWED_VIDEO_TYPES: tuple = (
        "video/mp4",
        "video/quicktime",
        "video/webm",
        "video/x-msvideo",
        "video/x-matroska",
    )

settings = Settings()
