import os

os.environ.setdefault("RECORD_STORE", "memory")
os.environ.setdefault("LLM_PROVIDER", "mock")

import asyncio
import json

import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from api import state
from api.backend import ScheduleProcessor
from api.workers import ProcessingJobs
from extraction.schedule_parser import ScheduleParser
from llm.llm_client import LLMClient
from storage.google_auth import GoogleAuthStore
from storage.memory_store import MemoryRecordStore
from storage.uploads import UploadStore

MATH_TEXT = "Math 101 Mon 9:00-10:30 Room 4"
MATH_EVENT = {
    "title": "Math 101",
    "date": "2025-03-03",
    "startTime": "09:00",
    "endTime": "10:30",
    "location": "Room 4",
}


class FakeProvider:
    def __init__(self, response_text: str):
        self._response_text = response_text
        self.calls = []

    def generate(self, *, system: str, user: str, image=None) -> str:
        self.calls.append({"system": system, "user": user, "image": image})
        return self._response_text


class FakeOCR:
    def __init__(self, text: str = MATH_TEXT, error: Exception = None):
        self.text = text
        self.error = error
        self.calls = 0

    def extract_text(self, image_bytes: bytes) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


class FakeCredentials:
    def __init__(self, token="access-1", refresh_token="refresh-1"):
        self.token = token
        self.refresh_token = refresh_token


class FakeInsert:
    def __init__(self, service, body):
        self.service = service
        self.body = body

    def execute(self):
        if self.body["summary"] in self.service.reject:
            raise RuntimeError("calendar rejected the event")
        self.service.inserted.append(self.body)
        return {"id": f"g-{len(self.service.inserted)}"}


class FakeEvents:
    def __init__(self, service):
        self.service = service

    def insert(self, calendarId, body):
        assert calendarId == "primary"
        return FakeInsert(self.service, body)


class FakeCalendarService:
    def __init__(self, reject=()):
        self.reject = set(reject)
        self.inserted = []

    def events(self):
        return FakeEvents(self)


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str):
        return FakeProvider(response_text)
    return _make


@pytest.fixture
def parser_for():
    def _make(payload):
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return ScheduleParser(llm_client=LLMClient(provider=FakeProvider(text)))
    return _make


@pytest.fixture
def records():
    store = MemoryRecordStore()
    asyncio.run(store.ensure_user(1, "default"))
    return store


@pytest.fixture
def uploads(tmp_path):
    return UploadStore(root=str(tmp_path / "uploads"))


@pytest.fixture
def auth_store(records):
    return GoogleAuthStore(records, key=Fernet.generate_key().decode())


@pytest.fixture
def app_state(records, uploads, auth_store, parser_for):
    """Wire the global state with fakes; returns it so tests can swap collaborators."""
    processor = ScheduleProcessor(
        records,
        uploads,
        ocr=FakeOCR(),
        parser=parser_for({"events": [MATH_EVENT], "confidence": 0.9}),
    )
    state.record_store = records
    state.upload_store = uploads
    state.google_auth_store = auth_store
    state.processor = processor
    state.jobs = ProcessingJobs(processor)
    yield state
    state.reset()


@pytest.fixture
def client(app_state):
    from api.main import app

    with TestClient(app) as c:
        yield c
