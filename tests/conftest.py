"""Fixtures for multipart_direct testing."""
import pathlib
from typing import Any, List, Tuple

import pytest

from multipart_direct.config import Config
from multipart_direct.progress import NullProgress
from multipart_direct.source import FileSource
from tests.mocks.fake_backend import FakeBackend

CONFIG_ENV_VARS = (
    "STORAGE_BACKEND",
    "BUCKET_NAME",
    "AWS_REGION",
    "S3_ENDPOINT_URL",
    "STORAGE_CLASS",
    "AZURE_CONN_STR",
    "CHUNK_SIZE_MB",
    "MAX_PARTS",
    "MAX_RETRIES",
    "RETRY_BASE_DELAY",
    "LOG_PATH",
)


class RecordingProgress(NullProgress):
    def __init__(self) -> None:
        self.events: List[Tuple[Any, ...]] = []

    def on_start(self, total: int, label: str) -> None:
        self.events.append(("start", total, label))

    def on_part(self, part_number: int, part_count: int) -> None:
        self.events.append(("part", part_number, part_count))

    def on_update(self, bytes_done: int, total: int) -> None:
        self.events.append(("update", bytes_done, total))

    def on_finish(self) -> None:
        self.events.append(("finish",))

    def updates(self) -> List[int]:
        return [e[1] for e in self.events if e[0] == "update"]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def cfg(clean_env: pytest.MonkeyPatch) -> Config:
    """Config with tiny 4-byte chunks so test files stay small."""
    clean_env.setenv("BUCKET_NAME", "test-bucket")
    clean_env.setenv("RETRY_BASE_DELAY", "2")
    config = Config()
    config.chunk_size = 4
    return config


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def reporter() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def make_source(tmp_path: pathlib.Path):
    def _make(content: bytes, name: str = "sample.txt") -> FileSource:
        path = tmp_path / name
        path.write_bytes(content)
        return FileSource(path)

    return _make


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record backoff delays instead of sleeping."""
    delays: List[float] = []
    monkeypatch.setattr("multipart_direct.uploader.time.sleep", delays.append)
    return delays
