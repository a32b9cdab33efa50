"""videos, video_analysis and video_frames tables

Revision ID: 001_video_analysis
Revises: 
Create Date: 2026-10-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers
revision: str = '001_video_analysis'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'videos',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('source_path', sa.String(), nullable=False),
        sa.Column('original_filename', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending_upload'),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_path')
    )
    op.create_index('ix_videos_owner_id', 'videos', ['owner_id'])
    op.create_index('ix_videos_status', 'videos', ['status'])
    op.create_index('ix_videos_created_at', 'videos', ['created_at'])

    op.create_table(
        'video_analysis',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('video_id', sa.UUID(), nullable=False),
        sa.Column('frame_count', sa.Integer(), nullable=False),
        sa.Column('duration_seconds', sa.Float(), nullable=False),
        sa.Column('lighting_score', sa.Float(), nullable=True),
        sa.Column('sharpness_score', sa.Float(), nullable=True),
        sa.Column('framing_score', sa.Float(), nullable=True),
        sa.Column('audio_score', sa.Float(), nullable=True),
        sa.Column('final_score', sa.Float(), nullable=True),
        sa.Column('issues', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_video_analysis_video_id', 'video_analysis', ['video_id'], unique=True)

    op.create_table(
        'video_frames',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('video_id', sa.UUID(), nullable=False),
        sa.Column('frame_number', sa.Integer(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('lighting', sa.Float(), nullable=False),
        sa.Column('sharpness', sa.Float(), nullable=False),
        sa.Column('framing', sa.Float(), nullable=False),
        sa.Column('overall', sa.Float(), nullable=False),
        sa.Column('issues', sa.JSON(), nullable=False),
        sa.Column('timestamp_seconds', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('video_id', 'frame_number')
    )
    op.create_index('ix_video_frames_video_id', 'video_frames', ['video_id'])


def downgrade() -> None:
    op.drop_index('ix_video_frames_video_id', table_name='video_frames')
    op.drop_table('video_frames')
    op.drop_index('ix_video_analysis_video_id', table_name='video_analysis')
    op.drop_table('video_analysis')
    op.drop_index('ix_videos_created_at', table_name='videos')
    op.drop_index('ix_videos_status', table_name='videos')
    op.drop_index('ix_videos_owner_id', table_name='videos')
    op.drop_table('videos')
