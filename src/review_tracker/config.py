from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DATA_DIR = "./data"
DEFAULT_JUDGE_URL_MARKERS = ("leetcode.com/problems/",)


def _split_comma_separated(raw: object) -> tuple[str, ...] | object:
    """Trim and deduplicate comma separated settings values.

    文字列/シーケンスのいずれでも受け取り、空要素と重複を除いたタプルに変換する。
    """

    if raw is None:
        candidates: list[str] = []
    elif isinstance(raw, str):
        candidates = raw.split(",")
    else:
        try:
            candidates = list(raw)
        except TypeError:
            return raw

    normalised: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        if not isinstance(candidate, str):
            continue
        trimmed = candidate.strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        normalised.append(trimmed)
    return tuple(normalised)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/production/test）
    - data_dir: CSV スナップショットとバックアップを置くディレクトリ
    - judge_url_markers: 問題 URL として受け付けるパス断片
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    host: str = Field(default="localhost", description="Bind host / 待受ホスト")
    port: int = Field(default=3001, description="Bind port / 待受ポート")

    # --- 永続化（CSV スナップショット） ---
    data_dir: str = Field(
        default=DEFAULT_DATA_DIR,
        description="Directory holding the CSV snapshot / CSV の保存ディレクトリ",
    )
    csv_filename: str = Field(
        default="questions.csv",
        description="Snapshot file name inside data_dir / スナップショットのファイル名",
    )
    backup_enabled: bool = Field(
        default=True,
        description="Copy the snapshot into backup/ on startup / 起動時にバックアップを作成",
    )
    backup_retention_days: int = Field(
        default=30,
        description="Delete backups older than this many days / バックアップ保持日数",
    )
    max_backup_files: int = Field(
        default=10,
        description="Maximum number of backup files kept / バックアップの最大保持数",
    )
    snapshot_poll_interval_sec: float = Field(
        default=2.0,
        description=(
            "Interval for detecting external CSV edits (0 disables) / "
            "CSV の外部編集を検知する間隔（0 で無効）"
        ),
    )

    # --- 一覧・復習キュー ---
    default_page_limit: int = Field(default=50, description="Default page size / 既定のページサイズ")
    max_page_limit: int = Field(default=10000, description="Upper bound of page size / ページサイズ上限")
    upcoming_window_days: int = Field(
        default=3,
        description="Days ahead listed as upcoming reviews / 近日レビューとして扱う日数",
    )
    judge_url_markers: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_JUDGE_URL_MARKERS,
        description=(
            "Comma separated URL fragments identifying a judge problem page / "
            "問題ページ URL と判定するパス断片"
        ),
    )

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description=(
            "Comma separated CORS origins / CORS で許可するオリジンのカンマ区切り一覧"
        ),
        validation_alias=AliasChoices("allowed_cors_origins", "cors_origins"),
    )
    log_level: str = Field(default="INFO", description="Root log level / ログレベル")

    # Pydantic v2 settings config
    # - env_file: .env を読み込む
    # - extra: 未使用キーを無視
    # - case_sensitive: 環境変数キーの大小文字を区別しない
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", "judge_url_markers", mode="before")
    @classmethod
    def _normalise_comma_separated(
        cls, raw: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        return _split_comma_separated(raw)

    @field_validator("max_page_limit", "default_page_limit", "upcoming_window_days", mode="after")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value

    @property
    def is_development(self) -> bool:
        return (self.environment or "").strip().lower() == "development"

    @property
    def csv_path(self) -> Path:
        return Path(self.data_dir) / self.csv_filename

    @property
    def backup_dir(self) -> Path:
        return Path(self.data_dir) / "backup"


settings = Settings()
