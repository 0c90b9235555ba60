from __future__ import annotations

import csv
import os
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from ..clock import format_timestamp, local_now, parse_timestamp
from ..errors import MalformedRecordError
from ..logging import logger
from ..models import Difficulty, Question, QuestionStatus
from .common import normalize_non_negative_int, split_history


CSV_HEADERS: tuple[str, ...] = (
    "id",
    "name",
    "category",
    "leetcode_url",
    "status",
    "first_completed",
    "last_reviewed",
    "next_review",
    "review_count",
    "difficulty_history",
    "notes",
)

# (mtime_ns, size, inode): 自分が書いたスナップショットかどうかの判定に使う
WriteToken = tuple[int, int, int]


class CsvQuestionRepository:
    """CSV-backed persistence for the full question set.

    - load_all: ファイルが無ければ空リスト。壊れた行はスキップして読み込みを継続
    - save_all: 同一ディレクトリの一時ファイルへ書き出してから rename で置き換える
      （読み手が書きかけのファイルを見ることはない）
    - create_backup: 起動時に backup/ へタイムスタンプ付きでコピーし、古いものを整理
    """

    def __init__(
        self,
        csv_path: str | Path,
        *,
        backup_dir: str | Path | None = None,
        max_backup_files: int = 10,
        backup_retention_days: int = 30,
    ) -> None:
        self.csv_path = Path(csv_path)
        self.backup_dir = Path(backup_dir) if backup_dir is not None else None
        self.max_backup_files = max_backup_files
        self.backup_retention_days = backup_retention_days

    # --- snapshot identity ---
    def fingerprint(self) -> Optional[WriteToken]:
        try:
            st = os.stat(self.csv_path)
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size, st.st_ino)

    # --- load ---
    def load_all(self) -> List[Question]:
        if not self.csv_path.exists():
            return []

        questions: List[Question] = []
        seen_ids: set[int] = set()
        with self.csv_path.open("r", newline="", encoding="utf-8") as fh:
            reader = csv.DictReader(fh)
            for row in reader:
                line = reader.line_num
                try:
                    question = self._parse_row(row, line=line)
                except MalformedRecordError as exc:
                    logger.warning("csv_row_skipped", path=str(self.csv_path), line=line, reason=exc.reason)
                    continue
                if question.id in seen_ids:
                    logger.warning("csv_row_skipped", path=str(self.csv_path), line=line, reason="duplicate id")
                    continue
                seen_ids.add(question.id)
                questions.append(question)
        return questions

    def _parse_row(self, row: dict, *, line: int | None = None) -> Question:
        def col(name: str) -> str:
            value = row.get(name)
            return value if isinstance(value, str) else ""

        raw_id = col("id").strip()
        try:
            question_id = int(raw_id)
        except ValueError as exc:
            raise MalformedRecordError(f"invalid id {raw_id!r}", line=line) from exc

        raw_status = col("status").strip() or QuestionStatus.not_started.value
        try:
            status = QuestionStatus(raw_status)
        except ValueError as exc:
            raise MalformedRecordError(f"unknown status {raw_status!r}", line=line) from exc

        try:
            history = [Difficulty(item) for item in split_history(col("difficulty_history"))]
        except ValueError as exc:
            raise MalformedRecordError(f"invalid difficulty_history: {exc}", line=line) from exc

        try:
            return Question(
                id=question_id,
                name=col("name"),
                category=col("category"),
                url=col("leetcode_url"),
                status=status,
                first_completed_at=parse_timestamp(col("first_completed")),
                last_reviewed_at=parse_timestamp(col("last_reviewed")),
                next_review_at=parse_timestamp(col("next_review")),
                review_count=normalize_non_negative_int(col("review_count")),
                difficulty_history=history,
                notes=col("notes"),
            )
        except ValidationError as exc:
            raise MalformedRecordError(str(exc.errors()[0].get("msg", exc)), line=line) from exc

    # --- save ---
    @staticmethod
    def _to_row(question: Question) -> dict[str, object]:
        return {
            "id": question.id,
            "name": question.name,
            "category": question.category,
            "leetcode_url": question.url,
            "status": question.status.value,
            "first_completed": format_timestamp(question.first_completed_at),
            "last_reviewed": format_timestamp(question.last_reviewed_at),
            "next_review": format_timestamp(question.next_review_at),
            "review_count": question.review_count,
            "difficulty_history": ",".join(d.value for d in question.difficulty_history),
            "notes": question.notes,
        }

    def save_all(self, questions: Iterable[Question]) -> Optional[WriteToken]:
        """Replace the whole snapshot atomically and return its write token."""
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.csv_path.parent,
            prefix=f".{self.csv_path.stem}-",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                writer = csv.DictWriter(fh, fieldnames=list(CSV_HEADERS))
                writer.writeheader()
                for question in questions:
                    writer.writerow(self._to_row(question))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.csv_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return self.fingerprint()

    # --- backups ---
    def create_backup(self, now: Optional[datetime] = None) -> Optional[Path]:
        if self.backup_dir is None or not self.csv_path.exists():
            return None
        now = now or local_now()
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        target = self.backup_dir / f"{self.csv_path.stem}-{now:%Y%m%d-%H%M%S-%f}{self.csv_path.suffix}"
        # バックアップの mtime は作成時刻（保持期間の判定に使う）
        shutil.copyfile(self.csv_path, target)
        logger.info("backup_created", path=str(target))
        self.prune_backups(now=now)
        return target

    def list_backups(self) -> List[Path]:
        if self.backup_dir is None or not self.backup_dir.exists():
            return []
        # ファイル名のタイムスタンプ順（古い → 新しい）
        return sorted(self.backup_dir.glob(f"{self.csv_path.stem}-*{self.csv_path.suffix}"))

    def prune_backups(self, now: Optional[datetime] = None) -> List[Path]:
        now = now or local_now()
        cutoff = (now - timedelta(days=self.backup_retention_days)).timestamp()
        removed: List[Path] = []
        remaining: List[Path] = []
        for path in self.list_backups():
            if path.stat().st_mtime < cutoff:
                path.unlink(missing_ok=True)
                removed.append(path)
            else:
                remaining.append(path)
        overflow = len(remaining) - max(self.max_backup_files, 0)
        if overflow > 0:
            for path in remaining[:overflow]:
                path.unlink(missing_ok=True)
                removed.append(path)
        if removed:
            logger.info("backup_pruned", removed=len(removed))
        return removed
