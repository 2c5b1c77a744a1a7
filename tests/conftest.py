from __future__ import annotations

import os
from unittest.mock import patch

import pytest

# Keep imports of study_engine.main from needing a real key
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("JSON_LOGS", "false")

from study_engine.infra.artifact_db import ArtifactCache
from study_engine.models.document import Document
from study_engine.services.artifact_service import ArtifactService
from tests.utils.fakes import FakeGenerationClient, InMemoryDocumentStore
from tests.utils.sqlite_test_db import SQLiteTestDB

OWNER = "user_a"
OTHER_OWNER = "user_b"
DOC_ID = "doc-1"
DOC_CONTENT = "The mitochondria is the powerhouse of the cell."


@pytest.fixture
def sqlite_db(tmp_path):
    """SQLite database standing in for Postgres, wired into every get_conn()."""
    db = SQLiteTestDB(db_path=str(tmp_path / "test_study.db"))
    db.ensure_schema()
    with patch("study_engine.infra.artifact_db.get_conn", side_effect=db.get_connection), \
         patch("study_engine.infra.document_store.get_conn", side_effect=db.get_connection):
        yield db


@pytest.fixture
def artifact_cache(sqlite_db) -> ArtifactCache:
    return ArtifactCache()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore([Document(id=DOC_ID, owner_id=OWNER, content=DOC_CONTENT)])


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def service(document_store, artifact_cache, fake_client) -> ArtifactService:
    return ArtifactService(
        documents=document_store,
        cache=artifact_cache,
        client=fake_client,
        generation_timeout=5.0,
    )
