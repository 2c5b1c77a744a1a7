import json
import threading
import time
from typing import Callable, Dict, List, Optional, Union

from study_engine.models.document import Document


class FakeGenerationClient:
    """
    Stands in for GenerationClient. Counts calls and returns canned output.

    `response` may be a string or a callable taking the prompt.
    `gate`, when given, blocks every call until it is set.
    """

    def __init__(self, response: Union[str, Callable[[str], str]] = "", delay: float = 0.0,
                 gate: Optional[threading.Event] = None, error: Optional[Exception] = None):
        self.response = response
        self.delay = delay
        self.gate = gate
        self.error = error
        self.prompts: List[str] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        with self._lock:
            return len(self.prompts)

    def generate(self, prompt: str) -> str:
        with self._lock:
            self.prompts.append(prompt)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.response):
            return self.response(prompt)
        return self.response


class InMemoryDocumentStore:
    def __init__(self, documents: Optional[List[Document]] = None):
        self.documents: Dict[str, Document] = {d.id: d for d in documents or []}
        self.lookups = 0

    def add(self, document: Document) -> None:
        self.documents[document.id] = document

    def get(self, document_id: str, owner_id: str) -> Optional[Document]:
        self.lookups += 1
        doc = self.documents.get(document_id)
        if doc is None or doc.owner_id != owner_id:
            return None
        return doc


def quiz_json(count: int, fenced: bool = False, label: str = "Generated") -> str:
    questions = [
        {
            "question": f"{label} question {i + 1}?",
            "options": [f"A{i}", f"B{i}", f"C{i}", f"D{i}"],
            "correctAnswer": i % 4,
        }
        for i in range(count)
    ]
    text = json.dumps(questions)
    return f"```json\n{text}\n```" if fenced else text


def quiz_response_for_prompt(prompt: str) -> str:
    """Answers a quiz prompt with exactly the number of questions it asks for."""
    marker = "Create exactly "
    start = prompt.index(marker) + len(marker)
    count = int(prompt[start:].split(" ", 1)[0])
    return quiz_json(count)
