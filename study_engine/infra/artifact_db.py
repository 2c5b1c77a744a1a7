import json
import uuid
from datetime import datetime
from typing import List, Optional
import psycopg
from psycopg.rows import dict_row
from study_engine.db import get_conn
from study_engine.errors import CachePersistFailure
from study_engine.models.artifact import (
    ARTIFACT_MODELS,
    ArtifactKind,
    CacheEntry,
    CacheHit,
    DerivedArtifact,
    Quiz,
)

# Schema for derived artifacts
ARTIFACTS_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS derived_artifacts (
    id UUID PRIMARY KEY,
    document_id TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    size_parameter INTEGER, -- quiz only: number of stored questions
    payload JSONB NOT NULL,
    created_at TIMESTAMP WITHOUT TIME ZONE DEFAULT (NOW() AT TIME ZONE 'utc')
);

CREATE INDEX IF NOT EXISTS idx_derived_artifacts_lookup
    ON derived_artifacts(document_id, owner_id, kind, size_parameter);

-- Summary and flashcards are create-once per (document, owner)
CREATE UNIQUE INDEX IF NOT EXISTS uq_derived_artifacts_single
    ON derived_artifacts(document_id, owner_id, kind)
    WHERE kind <> 'quiz';
"""

_COLUMNS = "id, document_id, owner_id, kind, size_parameter, payload, created_at"


class ArtifactCache:
    """
    Append-only store of generated artifacts in Postgres.
    Uses study_engine.db.get_conn() for connection parameters.

    Summary and flashcard entries are keyed by (document_id, owner_id, kind).
    Quiz entries additionally carry size_parameter and may coexist in several sizes.
    """

    def ensure_schema(self) -> None:
        """Ensures the artifacts table exists."""
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(ARTIFACTS_SCHEMA_SQL)
            conn.commit()

    def get(self, document_id: str, owner_id: str, kind: ArtifactKind, min_size: Optional[int] = None) -> Optional[CacheHit]:
        """
        Looks up a cached artifact. Returns None on a miss.

        For quizzes with `min_size`, the smallest entry holding at least `min_size`
        questions wins and is trimmed to exactly `min_size` questions.
        """
        kind = ArtifactKind(kind)
        query = f"""
        SELECT {_COLUMNS}
        FROM derived_artifacts
        WHERE document_id = %s AND owner_id = %s AND kind = %s
        """
        params = [document_id, owner_id, kind.value]

        if kind == ArtifactKind.QUIZ and min_size is not None:
            query += " AND size_parameter >= %s ORDER BY size_parameter ASC, created_at ASC"
            params.append(min_size)
        elif kind == ArtifactKind.QUIZ:
            query += " ORDER BY size_parameter DESC, created_at ASC"
        else:
            query += " ORDER BY created_at ASC"
        query += " LIMIT 1;"

        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, tuple(params))
                row = cur.fetchone()

        if not row:
            return None

        entry = self._map_row_to_entry(row)
        artifact = entry.artifact
        if kind == ArtifactKind.QUIZ and min_size is not None and isinstance(artifact, Quiz):
            artifact = artifact.first(min_size)
        return CacheHit(artifact=artifact, stored_size=entry.size_parameter)

    def put(self, document_id: str, owner_id: str, kind: ArtifactKind, artifact: DerivedArtifact, size: Optional[int] = None) -> CacheEntry:
        """
        Appends a new entry. Existing entries are never updated or removed.
        Raises CachePersistFailure if the write does not go through.
        """
        kind = ArtifactKind(kind)
        entry = CacheEntry(
            id=uuid.uuid4(),
            document_id=document_id,
            owner_id=owner_id,
            kind=kind,
            size_parameter=size if kind == ArtifactKind.QUIZ else None,
            artifact=artifact,
            created_at=datetime.utcnow(),
        )
        query = f"""
        INSERT INTO derived_artifacts ({_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s);
        """
        data = (
            str(entry.id),
            entry.document_id,
            entry.owner_id,
            entry.kind.value,
            entry.size_parameter,
            json.dumps(artifact.model_dump(by_alias=True, mode="json")),
            entry.created_at,
        )

        try:
            with get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, data)
                conn.commit()
        except psycopg.Error as e:
            raise CachePersistFailure(f"Could not persist {kind.value} for document {document_id}: {e}") from e
        return entry

    def list_entries(self, document_id: str, owner_id: str) -> List[CacheEntry]:
        """
        Lists entry metadata for a document, newest first. Payloads are not loaded.
        """
        query = """
        SELECT id, document_id, owner_id, kind, size_parameter, created_at
        FROM derived_artifacts
        WHERE document_id = %s AND owner_id = %s
        ORDER BY created_at DESC;
        """
        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (document_id, owner_id))
                rows = cur.fetchall()

        return [self._map_row_to_entry(row) for row in rows]

    def _map_row_to_entry(self, row: dict) -> CacheEntry:
        """
        Helper to map DB row to CacheEntry.
        """
        kind = ArtifactKind(row['kind'])
        artifact = None
        payload = row.get('payload')
        if payload is not None:
            # JSONB may come back as string depending on driver config
            if isinstance(payload, str):
                payload = json.loads(payload)
            artifact = ARTIFACT_MODELS[kind].model_validate(payload)

        return CacheEntry(
            id=uuid.UUID(str(row['id'])),
            document_id=row['document_id'],
            owner_id=row['owner_id'],
            kind=kind,
            size_parameter=row['size_parameter'],
            artifact=artifact,
            created_at=row['created_at'],
        )
