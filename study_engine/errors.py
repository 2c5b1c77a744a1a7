"""Failure taxonomy for artifact generation.

Only ``NotFoundOrForbidden``, ``GenerationUnavailable`` and ``GenerationTimeout``
ever reach the transport layer. ``MalformedResponse`` is absorbed by the
response parser and ``CachePersistFailure`` is logged by the service.
"""


class ArtifactError(Exception):
    """Base class for all artifact engine errors."""


class NotFoundOrForbidden(ArtifactError):
    def __init__(self, document_id: str):
        super().__init__(document_id)
        self.document_id = document_id

    def __str__(self) -> str:
        return f"Document {self.document_id} not found or access denied"


class GenerationUnavailable(ArtifactError):
    """The external generation call failed (network, quota or auth)."""


class GenerationTimeout(ArtifactError):
    def __init__(self, timeout_seconds: float):
        super().__init__(timeout_seconds)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        return f"Generation did not finish within {self.timeout_seconds:g}s"


class MalformedResponse(ArtifactError):
    """Raw generation output could not be decoded into the expected shape."""


class CachePersistFailure(ArtifactError):
    """Writing a freshly generated artifact to the cache failed."""
