from __future__ import annotations

from ..clock import Clock, local_now
from ..config import Settings
from .csv_repository import CSV_HEADERS, CsvQuestionRepository
from .question_store import QuestionRepository, QuestionStore
from .watcher import SnapshotWatcher


def create_store(settings: Settings, *, clock: Clock = local_now) -> QuestionStore:
    """設定から CSV リポジトリと QuestionStore を組み立てる（アプリにつき1つ）。"""

    repository = CsvQuestionRepository(
        settings.csv_path,
        backup_dir=settings.backup_dir if settings.backup_enabled else None,
        max_backup_files=settings.max_backup_files,
        backup_retention_days=settings.backup_retention_days,
    )
    return QuestionStore(
        repository,
        clock=clock,
        max_page_limit=settings.max_page_limit,
        upcoming_days=settings.upcoming_window_days,
    )


__all__ = [
    "CSV_HEADERS",
    "CsvQuestionRepository",
    "QuestionRepository",
    "QuestionStore",
    "SnapshotWatcher",
    "create_store",
]
