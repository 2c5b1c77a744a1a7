from typing import Optional, Protocol
from psycopg.rows import dict_row
from study_engine.db import get_conn
from study_engine.models.document import Document


class DocumentStore(Protocol):
    """Read interface onto the stored documents."""

    def get(self, document_id: str, owner_id: str) -> Optional[Document]:
        """Returns the document if it exists and belongs to owner_id, else None."""
        ...


class PostgresDocumentStore:
    """
    Reads documents written by the ingestion side. Never writes.
    """

    def get(self, document_id: str, owner_id: str) -> Optional[Document]:
        # Ownership is part of the lookup so foreign documents look absent
        query = """
        SELECT id, owner_id, title, content, created_at
        FROM documents
        WHERE id = %s AND owner_id = %s;
        """

        with get_conn() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (document_id, owner_id))
                row = cur.fetchone()

        if not row:
            return None

        return Document(
            id=str(row['id']),
            owner_id=row['owner_id'],
            title=row.get('title'),
            content=row['content'] or "",
            created_at=row['created_at'],
        )
