from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field
from typing import Optional, Dict, List
from app.core.clock import utc_now

class VideoAnalysis(SQLModel, table=True):
    __tablename__ = "video_analysis"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    video_id: UUID = Field(foreign_key="videos.id", unique=True, index=True)
    frame_count: int
    duration_seconds: float

    # filled in once, at aggregation time
    lighting_score: Optional[float] = Field(default=None, nullable=True)
    sharpness_score: Optional[float] = Field(default=None, nullable=True)
    framing_score: Optional[float] = Field(default=None, nullable=True)
    audio_score: Optional[float] = Field(default=None, nullable=True)
    final_score: Optional[float] = Field(default=None, nullable=True)
    issues: Optional[Dict[str, List[str]]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
