from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field
from typing import Optional
from app.core.clock import utc_now

# lifecycle: pending_upload -> processing -> completed | failed | timeout
VIDEO_STATUSES = ("pending_upload", "processing", "completed", "failed", "timeout")
TERMINAL_STATUSES = ("completed", "failed", "timeout")

class Video(SQLModel, table=True):
    __tablename__ = "videos"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: str = Field(index=True)
    source_path: str = Field(unique=True)
    original_filename: str
    status: str = Field(default="pending_upload", index=True)
    error_message: Optional[str] = Field(default=None, nullable=True)  # set iff failed/timeout
    processing_started_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    processing_completed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
