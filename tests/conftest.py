"""Shared fixtures: temporary CSV snapshot, a controllable clock and a ready store."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from review_tracker.config import Settings
from review_tracker.main import create_app
from review_tracker.store import CsvQuestionRepository, QuestionStore

from factories import FIXED_NOW


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture()
def repository(tmp_path) -> CsvQuestionRepository:
    return CsvQuestionRepository(
        tmp_path / "questions.csv",
        backup_dir=tmp_path / "backup",
        max_backup_files=3,
        backup_retention_days=30,
    )


@pytest.fixture()
def store(repository: CsvQuestionRepository, clock: FakeClock) -> QuestionStore:
    s = QuestionStore(repository, clock=clock, max_page_limit=100)
    s.initialize()
    return s


@pytest.fixture()
def app_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        data_dir=str(tmp_path / "data"),
        snapshot_poll_interval_sec=0,
    )


@pytest.fixture()
def client(app_settings: Settings, clock: FakeClock):
    app = create_app(app_settings, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
