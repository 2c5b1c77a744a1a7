from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Document(BaseModel):
    """
    Read-only view of a stored document. Owned by the document store.
    """
    id: str
    owner_id: str
    title: Optional[str] = None
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
