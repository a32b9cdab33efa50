from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column, DateTime, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import List
from app.core.clock import utc_now

class VideoFrame(SQLModel, table=True):
    __tablename__ = "video_frames"
    __table_args__ = (UniqueConstraint("video_id", "frame_number"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    video_id: UUID = Field(foreign_key="videos.id", index=True)
    frame_number: int  # 1-based, contiguous
    storage_path: str
    lighting: float
    sharpness: float
    framing: float
    overall: float
    issues: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    timestamp_seconds: float
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
