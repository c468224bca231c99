import pytest

from tripsync.config import settings
from tripsync.database import db, MemoryBackend


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch):
    """Every test gets an empty in-memory store and no Gemini access"""
    monkeypatch.setattr(settings, "gemini_api_key", None)
    db.use_backend(MemoryBackend())
    yield db
