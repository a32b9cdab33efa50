from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from sqlmodel import Session, select

from app.analysis.aggregate import aggregate
from app.analysis.frames import FrameScore
from app.api.v1 import process as process_api
from app.models import Video, VideoAnalysis
from app.core.clock import utc_now
from app.services.video_state import complete_video, fail_video, insert_analysis, insert_frame
from fakes import make_video

USER = {"X-User-Id": "user-1"}
OTHER_USER = {"X-User-Id": "user-2"}


@pytest.fixture
def enqueued(monkeypatch):
    calls = []
    monkeypatch.setattr(process_api, "enqueue_video_processing", lambda *args: calls.append(args))
    return calls


def completed_video(engine, session, frame_count=2):
    started = utc_now() - timedelta(seconds=42)
    video = make_video(session, status="processing", processing_started_at=started)
    insert_analysis(engine, video.id, frame_count, 12.5)
    scores = []
    for n in range(1, frame_count + 1):
        score = FrameScore(8, 7, 6, 7, ["Poor lighting"])
        insert_frame(engine, video.id, n, f"user-1/{video.id}/frame_{n:04d}.jpg", score, float(n - 1))
        scores.append(score)
    complete_video(engine, video.id, aggregate(scores))
    session.expire_all()
    return video


def test_health(client):
    response = client.get("/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requests_without_user_are_rejected(client):
    response = client.post("/api/upload/intent", json={"filename": "a.mp4", "filesize": 10, "mimetype": "video/mp4"})
    assert response.status_code == 401


def test_upload_intent_registers_pending_video(client, session):
    response = client.post(
        "/api/upload/intent",
        json={"filename": "Beach Day.MOV", "filesize": 2048, "mimetype": "video/quicktime"},
        headers=USER,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending_upload"
    assert data["file_path"] == f"user-1/{data['video_id']}/video.mov"

    video = session.get(Video, UUID(data["video_id"]))
    assert video.owner_id == "user-1"
    assert video.original_filename == "Beach Day.MOV"


@pytest.mark.parametrize("body, message", [
    ({"filename": "a.mp4", "filesize": 10}, "Missing required fields"),
    ({"filename": "a.gif", "filesize": 10, "mimetype": "image/gif"}, "Invalid file type"),
    ({"filename": "a.mp4", "filesize": 500 * 1024 * 1024, "mimetype": "video/mp4"}, "exceeds maximum"),
])
def test_upload_intent_validation(client, body, message):
    response = client.post("/api/upload/intent", json=body, headers=USER)

    assert response.status_code == 400
    assert message in response.json()["detail"]


def test_upload_stores_bytes_at_source_path(client, session, storage):
    video = make_video(session, status="pending_upload")

    response = client.put(
        f"/api/upload/{video.id}",
        files={"file": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        headers=USER,
    )

    assert response.status_code == 200
    assert response.json()["file_path"] == video.source_path
    assert storage.download(video.source_path) == b"\x00\x00\x00\x18ftypmp42"


def test_upload_rejects_empty_file(client, session):
    video = make_video(session, status="pending_upload")

    response = client.put(f"/api/upload/{video.id}", files={"file": ("clip.mp4", b"", "video/mp4")}, headers=USER)

    assert response.status_code == 400


def test_upload_after_processing_started_conflicts(client, session):
    video = make_video(session, status="processing")

    response = client.put(f"/api/upload/{video.id}", files={"file": ("clip.mp4", b"data", "video/mp4")}, headers=USER)

    assert response.status_code == 409


def test_upload_to_someone_elses_video_is_forbidden(client, session):
    video = make_video(session, status="pending_upload")

    response = client.put(f"/api/upload/{video.id}", files={"file": ("clip.mp4", b"data", "video/mp4")}, headers=OTHER_USER)

    assert response.status_code == 403


def test_process_marks_processing_and_enqueues(client, session, enqueued):
    video = make_video(session, status="pending_upload")

    response = client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)

    assert response.status_code == 200
    assert response.json()["status"] == "processing"
    assert enqueued == [(video.id, "user-1", video.source_path)]

    session.expire_all()
    stored = session.get(Video, video.id)
    assert stored.status == "processing"
    assert stored.processing_started_at is not None


def test_process_twice_is_rejected(client, session, enqueued):
    video = make_video(session, status="pending_upload")

    client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)
    response = client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)

    assert response.status_code == 400
    assert response.json()["detail"] == "Video is already being processed"
    assert len(enqueued) == 1


def test_process_completed_video_is_rejected(client, engine, session, enqueued):
    video = completed_video(engine, session)

    response = client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)

    assert response.status_code == 400
    assert enqueued == []


def test_process_unknown_or_foreign_video(client, session, enqueued):
    video = make_video(session, status="pending_upload")

    assert client.post("/api/process/", json={"video_id": str(uuid4())}, headers=USER).status_code == 404
    assert client.post("/api/process/", json={"video_id": str(video.id)}, headers=OTHER_USER).status_code == 403
    assert enqueued == []


def test_failed_video_can_be_rerun(client, engine, session, enqueued):
    video = make_video(session, status="processing")
    insert_analysis(engine, video.id, 3, 9.0)
    fail_video(engine, video.id, "ffprobe failed")
    session.expire_all()

    response = client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)

    assert response.status_code == 200
    with Session(engine) as fresh:
        stored = fresh.get(Video, video.id)
        assert stored.status == "processing"
        assert stored.error_message is None
        assert fresh.exec(select(VideoAnalysis).where(VideoAnalysis.video_id == video.id)).first() is None


def test_enqueue_failure_marks_video_failed(client, engine, session, monkeypatch):
    def broken(*args):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(process_api, "enqueue_video_processing", broken)
    video = make_video(session, status="pending_upload")

    response = client.post("/api/process/", json={"video_id": str(video.id)}, headers=USER)

    assert response.status_code == 500
    with Session(engine) as fresh:
        stored = fresh.get(Video, video.id)
        assert stored.status == "failed"
        assert "redis unavailable" in stored.error_message


def test_results_while_processing_report_progress(client, engine, session):
    video = make_video(session, status="processing")
    insert_analysis(engine, video.id, 4, 8.0)
    insert_frame(engine, video.id, 1, f"user-1/{video.id}/frame_0001.jpg", FrameScore(7, 7, 7, 7, []), 0.0)

    response = client.get(f"/api/results/{video.id}", headers=USER)

    assert response.status_code == 202
    assert response.json()["progress"] == 25


def test_results_before_extraction_report_zero_progress(client, session):
    video = make_video(session, status="processing")

    response = client.get(f"/api/results/{video.id}", headers=USER)

    assert response.status_code == 202
    assert response.json()["progress"] == 0


def test_results_for_pending_upload_is_bad_request(client, session):
    video = make_video(session, status="pending_upload")

    assert client.get(f"/api/results/{video.id}", headers=USER).status_code == 400


def test_results_for_completed_video(client, engine, session):
    video = completed_video(engine, session)

    response = client.get(f"/api/results/{video.id}", headers=USER)

    assert response.status_code == 200
    assert "max-age" in response.headers["cache-control"]
    data = response.json()
    assert data["status"] == "completed"
    assert data["scores"] == {
        "lighting": 8.0,
        "sharpness": 7.0,
        "framing": 6.0,
        "audio": None,
        "final": 7.0,
    }
    assert data["issues"]["lighting"] == ["Poor lighting"]
    assert data["metadata"]["frame_count"] == 2
    assert data["metadata"]["duration"] == 12.5
    assert data["metadata"]["processing_time"] >= 42
    assert "frames" not in data


def test_results_include_frames_in_order(client, engine, session):
    video = completed_video(engine, session, frame_count=3)

    response = client.get(f"/api/results/{video.id}?include_frames=true", headers=USER)

    frames = response.json()["frames"]
    assert [f["frame_number"] for f in frames] == [1, 2, 3]
    assert [f["timestamp_seconds"] for f in frames] == [0.0, 1.0, 2.0]


@pytest.mark.parametrize("status, message", [
    ("failed", "No frames were extracted from the video"),
    ("timeout", "Processing exceeded maximum time limit"),
])
def test_results_for_unsuccessful_runs(client, session, status, message):
    video = make_video(session, status=status, error_message=message)

    response = client.get(f"/api/results/{video.id}", headers=USER)

    assert response.status_code == 200
    assert response.json() == {"video_id": str(video.id), "status": status, "error_message": message}


def test_results_for_foreign_video_forbidden(client, session):
    video = make_video(session, status="processing")

    assert client.get(f"/api/results/{video.id}", headers=OTHER_USER).status_code == 403


def test_list_videos_only_returns_own(client, engine, session):
    completed_video(engine, session)
    make_video(session, status="failed", error_message="boom")
    make_video(session, owner_id="user-2", status="pending_upload")

    response = client.get("/api/videos/", headers=USER)

    data = response.json()
    assert data["total"] == 2
    assert {v["status"] for v in data["videos"]} == {"completed", "failed"}

    filtered = client.get("/api/videos/?status=completed", headers=USER).json()
    assert filtered["total"] == 1
    assert filtered["videos"][0]["final_score"] == 7.0


def test_list_videos_rejects_unknown_status(client):
    assert client.get("/api/videos/?status=queued", headers=USER).status_code == 400


def test_delete_video_removes_objects_and_rows(client, engine, session, storage):
    video = completed_video(engine, session)
    storage.upload(video.source_path, b"video", "video/mp4")
    storage.upload(f"user-1/{video.id}/frame_0001.jpg", b"frame", "image/jpeg")

    response = client.delete(f"/api/videos/{video.id}", headers=USER)

    assert response.status_code == 200
    assert response.json()["objects_removed"] == 2
    assert storage.list(f"user-1/{video.id}/") == []
    assert client.get(f"/api/results/{video.id}", headers=USER).status_code == 404


def test_delete_while_processing_conflicts(client, session):
    video = make_video(session, status="processing")

    assert client.delete(f"/api/videos/{video.id}", headers=USER).status_code == 409


def test_new_rows_carry_timezone_aware_timestamps():
    video = Video(owner_id="user-1", source_path="user-1/x/video.mp4", original_filename="x.mp4")
    analysis = VideoAnalysis(video_id=video.id, frame_count=1, duration_seconds=1.0)

    assert video.created_at.tzinfo is not None
    assert analysis.created_at.tzinfo is not None


def test_results_timestamps_are_utc(client, engine, session):
    video = completed_video(engine, session)

    data = client.get(f"/api/results/{video.id}", headers=USER).json()

    assert data["created_at"].endswith("+00:00")
    assert data["processing_completed_at"].endswith("+00:00")
    listed = client.get("/api/videos/", headers=USER).json()["videos"][0]
    assert listed["processing_started_at"].endswith("+00:00")
