"""環境変数からの設定読み込みと正規化を検証するテスト群。"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from review_tracker.config import Settings
from review_tracker.main import create_app


def test_defaults():
    config = Settings(_env_file=None)

    assert config.port == 3001
    assert config.csv_path == Path("./data") / "questions.csv"
    assert config.backup_dir == Path("./data") / "backup"
    assert config.backup_retention_days == 30
    assert config.max_backup_files == 10
    assert config.judge_url_markers == ("leetcode.com/problems/",)
    assert config.upcoming_window_days == 3
    assert config.is_development


def test_data_dir_and_filename_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CSV_FILENAME", "practice.csv")

    config = Settings(_env_file=None)

    assert config.csv_path == tmp_path / "practice.csv"
    assert config.backup_dir == tmp_path / "backup"


def test_cors_origins_are_trimmed_and_deduplicated(monkeypatch: pytest.MonkeyPatch):
    """`CORS_ORIGINS` から値を読み込み、トリムと重複排除を行う。"""

    monkeypatch.setenv(
        "CORS_ORIGINS",
        " http://localhost:5173 ,https://tracker.example.com,http://localhost:5173 ,",
    )

    config = Settings(_env_file=None)

    assert config.allowed_cors_origins == ("http://localhost:5173", "https://tracker.example.com")


def test_judge_url_markers_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JUDGE_URL_MARKERS", "leetcode.com/problems/, leetcode.cn/problems/")

    config = Settings(_env_file=None)

    assert config.judge_url_markers == ("leetcode.com/problems/", "leetcode.cn/problems/")


@pytest.mark.parametrize("field", ["max_page_limit", "default_page_limit", "upcoming_window_days"])
def test_page_and_window_sizes_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_production_without_origins_sends_no_cors_headers(tmp_path):
    config = Settings(_env_file=None, environment="production", data_dir=str(tmp_path), snapshot_poll_interval_sec=0)

    with TestClient(create_app(config)) as client:
        resp = client.get("/healthz", headers={"Origin": "https://evil.example.com"})

    assert "access-control-allow-origin" not in resp.headers


def test_configured_origin_is_allowed(tmp_path):
    config = Settings(
        _env_file=None,
        environment="production",
        data_dir=str(tmp_path),
        snapshot_poll_interval_sec=0,
        allowed_cors_origins="https://tracker.example.com",
    )

    with TestClient(create_app(config)) as client:
        resp = client.get("/healthz", headers={"Origin": "https://tracker.example.com"})

    assert resp.headers["access-control-allow-origin"] == "https://tracker.example.com"
    assert resp.headers["access-control-allow-credentials"] == "true"
