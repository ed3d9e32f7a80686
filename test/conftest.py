from __future__ import annotations

import copy
import os
import sys
import types
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.pop("MONGODB_URI", None)
os.environ["SURVEY_STORE"] = "memory"
os.environ.setdefault("SESSION_TTL_SECONDS", "3600")


class StubCollection:
    """In-process stand-in for a MongoDB collection.

    Supports top-level equality filters and ``$set`` updates, records every
    call, and raises ``error`` from each operation when set.
    """

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None) -> None:
        self.documents: List[Dict[str, Any]] = [copy.deepcopy(doc) for doc in documents or []]
        self.calls: List[str] = []
        self.error: Optional[Exception] = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.error is not None:
            raise self.error

    @staticmethod
    def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in query.items())

    def find(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._record("find")
        return [copy.deepcopy(doc) for doc in self.documents if self._matches(doc, query)]

    def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        self._record("find_one")
        for doc in self.documents:
            if self._matches(doc, query):
                if projection:
                    return {key: doc[key] for key in projection if key in doc}
                return copy.deepcopy(doc)
        return None

    def insert_one(self, document: Dict[str, Any]) -> types.SimpleNamespace:
        self._record("insert_one")
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return types.SimpleNamespace(inserted_id=stored["_id"])

    def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> types.SimpleNamespace:
        self._record("update_one")
        for doc in self.documents:
            if self._matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return types.SimpleNamespace(matched_count=1, modified_count=1)
        return types.SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, query: Dict[str, Any]) -> types.SimpleNamespace:
        self._record("delete_one")
        for position, doc in enumerate(self.documents):
            if self._matches(doc, query):
                del self.documents[position]
                return types.SimpleNamespace(deleted_count=1)
        return types.SimpleNamespace(deleted_count=0)


@pytest.fixture
def stub_collection_factory():
    return StubCollection


@pytest.fixture
def feedback_questions() -> List[Dict[str, Any]]:
    return [
        {"type": "text", "question": "Name", "required": True},
        {"type": "textarea", "question": "Comment", "required": False},
    ]
