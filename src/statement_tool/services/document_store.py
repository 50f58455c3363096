"""
Document Store - JSON files standing in for the cloud document collections.

Each collection is one file, <data_dir>/<collection>.json, holding a list of
documents keyed by 'id'. Readers get copies; nothing is shared between calls.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

COLLECTIONS = (
    'pricingRules',
    'pricingHistory',
    'customers',
    'products',
    'invoices',
    'revenueTargets',
)


class JsonDocumentStore:
    """File-backed collections of JSON documents."""

    def __init__(self, data_dir: Path, create: bool = True):
        self.data_dir = Path(data_dir)
        if not self.data_dir.exists():
            if not create:
                raise FileNotFoundError(f"Data directory not found at {self.data_dir}")
            self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str) -> Path:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{collection}'")
        return self.data_dir / f"{collection}.json"

    def all(self, collection: str) -> list[dict]:
        """All documents of a collection, in stored order."""
        path = self._path(collection)
        if not path.exists():
            return []
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path} must contain a JSON list")
        return data

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        for doc in self.all(collection):
            if doc.get('id') == doc_id:
                return doc
        return None

    def upsert(self, collection: str, doc: dict) -> dict:
        """Insert or replace a document by id."""
        return self.upsert_many(collection, [doc])[0]

    def upsert_many(self, collection: str, docs: list[dict]) -> list[dict]:
        """Insert or replace several documents in one write."""
        if any(not d.get('id') for d in docs):
            raise ValueError("Documents must carry an 'id'")

        existing = self.all(collection)
        index = {d.get('id'): i for i, d in enumerate(existing)}
        for doc in docs:
            if doc['id'] in index:
                existing[index[doc['id']]] = doc
            else:
                index[doc['id']] = len(existing)
                existing.append(doc)

        self._write(collection, existing)
        return docs

    def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document; False when it did not exist."""
        existing = self.all(collection)
        remaining = [d for d in existing if d.get('id') != doc_id]
        if len(remaining) == len(existing):
            return False
        self._write(collection, remaining)
        return True

    def _write(self, collection: str, docs: list[dict]):
        """Write through a temp file so readers never see a partial file."""
        path = self._path(collection)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(docs, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Wrote %d documents to %s", len(docs), path.name)
