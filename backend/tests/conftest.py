import os
import tempfile

# point settings at throwaway locations before any app module is imported
_TEST_ROOT = tempfile.mkdtemp(prefix="framegrade-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DATA_DIR"] = _TEST_ROOT
os.environ["STORAGE_DIR"] = os.path.join(_TEST_ROOT, "objects")
os.environ["WORK_DIR"] = os.path.join(_TEST_ROOT, "processing")
os.environ["LOG_DIR"] = os.path.join(_TEST_ROOT, "logs")
os.environ["FRAME_DELAY_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine, SQLModel
from sqlmodel.pool import StaticPool

from app.main import app
from app.core.db import get_session
from app.api.deps import get_object_storage
from app.services.storage import LocalObjectStorage


# create in-memory test database
@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()

@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session

@pytest.fixture(name="storage")
def storage_fixture(tmp_path):
    return LocalObjectStorage(str(tmp_path / "objects"))

@pytest.fixture(name="client")
def client_fixture(session: Session, storage):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_object_storage] = lambda: storage
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
