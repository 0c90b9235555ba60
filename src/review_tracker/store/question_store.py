from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, List, Mapping, Optional, Protocol, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..clock import Clock, calendar_date, local_now, to_local
from ..due import DEFAULT_UPCOMING_DAYS, DueSet, DueStatus, classify_due, get_due_set
from ..errors import (
    DuplicateUrlError,
    InvalidInputError,
    QuestionNotFoundError,
    StoreNotInitializedError,
)
from ..logging import logger
from ..models import (
    Question,
    QuestionCreate,
    QuestionFilters,
    QuestionsResponse,
    QuestionStatus,
    QuestionUpdate,
    ReviewRequest,
    StatsResponse,
)
from ..srs import apply_completion, apply_reset, apply_review


_M = TypeVar("_M", bound=BaseModel)


class QuestionRepository(Protocol):
    def load_all(self) -> List[Question]: ...

    def save_all(self, questions: List[Question]) -> Any: ...

    def fingerprint(self) -> Any: ...


class QuestionStore:
    """In-memory owner of all question records with write-through persistence.

    - すべての変更操作は「新しいリストを作る → リポジトリへ保存 → 差し替え」の順。
      保存が失敗した場合はメモリ上の状態は変わらず、例外はそのまま呼び出し元へ。
    - 入力検証と URL 重複チェックは書き込みより前に行う。
    - 外部編集の再読み込みは write token（自分が最後に書いた/読んだスナップショット
      の指紋）と比較して判定する。自分の書き込みで再読み込みが走ることはない。
    """

    def __init__(
        self,
        repository: QuestionRepository,
        *,
        clock: Clock = local_now,
        max_page_limit: int = 10000,
        upcoming_days: int = DEFAULT_UPCOMING_DAYS,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self.max_page_limit = max_page_limit
        self.upcoming_days = upcoming_days
        self._questions: List[Question] = []
        self._next_id = 1
        self._initialized = False
        self._write_token: Any = None
        self._lock = threading.RLock()
        self.generation = 0

    # --- lifecycle ---
    @property
    def repository(self) -> QuestionRepository:
        return self._repository

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        with self._lock:
            self._replace_from_snapshot()
            logger.info("questions_loaded", total=len(self._questions), next_id=self._next_id)

    def reload(self, *, force: bool = True) -> bool:
        """Replace the in-memory set with the persisted snapshot.

        force=False のときは、スナップショットの指紋が自分の最後の書き込み/読み込み
        と同じであれば何もしない（False を返す）。
        """
        with self._lock:
            if not force and self._repository.fingerprint() == self._write_token:
                logger.debug("snapshot_reload_skipped", generation=self.generation)
                return False
            self._replace_from_snapshot()
            logger.info("questions_reloaded", total=len(self._questions), generation=self.generation)
            return True

    def sync_from_snapshot(self) -> bool:
        return self.reload(force=False)

    def _replace_from_snapshot(self) -> None:
        token = self._repository.fingerprint()
        questions = list(self._repository.load_all())
        self._questions = questions
        self._next_id = max((q.id for q in questions), default=0) + 1
        self._write_token = token
        self._initialized = True
        self.generation += 1

    def _commit(self, questions: List[Question]) -> None:
        token = self._repository.save_all(questions)
        self._questions = questions
        self._write_token = token
        self.generation += 1

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StoreNotInitializedError()

    def _now(self) -> datetime:
        return to_local(self._clock())

    # --- helpers ---
    @staticmethod
    def _validate(model: type[_M], data: Union[_M, Mapping[str, Any]]) -> _M:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise InvalidInputError(str(exc)) from exc

    def _index_of(self, question_id: int) -> int:
        for index, question in enumerate(self._questions):
            if question.id == question_id:
                return index
        raise QuestionNotFoundError(question_id)

    def _url_taken(self, url: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(q.url == url and q.id != exclude_id for q in self._questions)

    def _replace_at(self, index: int, question: Question) -> Question:
        updated = list(self._questions)
        updated[index] = question
        self._commit(updated)
        return question.model_copy(deep=True)

    # --- queries ---
    def list_questions(
        self, filters: Union[QuestionFilters, Mapping[str, Any], None] = None
    ) -> QuestionsResponse:
        flt = self._validate(QuestionFilters, filters or {})
        with self._lock:
            filtered = list(self._questions)
            if flt.category:
                needle = flt.category.lower()
                filtered = [q for q in filtered if needle in q.category.lower()]
            if flt.status is not None:
                filtered = [q for q in filtered if q.status == flt.status]
            limit = min(flt.limit, self.max_page_limit)
            start = (flt.page - 1) * limit
            page_items = [q.model_copy(deep=True) for q in filtered[start:start + limit]]
            return QuestionsResponse(questions=page_items, total=len(filtered), page=flt.page)

    def get_by_id(self, question_id: int) -> Question:
        with self._lock:
            return self._questions[self._index_of(question_id)].model_copy(deep=True)

    def count(self) -> int:
        with self._lock:
            return len(self._questions)

    def all_questions(self) -> List[Question]:
        with self._lock:
            return [q.model_copy(deep=True) for q in self._questions]

    # --- mutations ---
    def create(self, data: Union[QuestionCreate, Mapping[str, Any]]) -> Question:
        payload = self._validate(QuestionCreate, data)
        with self._lock:
            self._require_initialized()
            if self._url_taken(payload.url):
                raise DuplicateUrlError(payload.url)
            question = Question(
                id=self._next_id,
                name=payload.name,
                category=payload.category,
                url=payload.url,
                notes=payload.notes or "",
            )
            self._commit([*self._questions, question])
            self._next_id += 1
            logger.info("question_created", question_id=question.id, category=question.category)
            return question.model_copy(deep=True)

    def update(self, question_id: int, data: Union[QuestionUpdate, Mapping[str, Any]]) -> Question:
        payload = self._validate(QuestionUpdate, data)
        with self._lock:
            self._require_initialized()
            index = self._index_of(question_id)
            changes = payload.model_dump(exclude_unset=True, exclude_none=True)
            if "url" in changes and self._url_taken(changes["url"], exclude_id=question_id):
                raise DuplicateUrlError(changes["url"])
            result = self._replace_at(index, self._questions[index].model_copy(update=changes))
            logger.info("question_updated", question_id=question_id, fields=sorted(changes))
            return result

    def delete(self, question_id: int) -> bool:
        with self._lock:
            self._require_initialized()
            try:
                index = self._index_of(question_id)
            except QuestionNotFoundError:
                return False
            remaining = [q for i, q in enumerate(self._questions) if i != index]
            self._commit(remaining)
            logger.info("question_deleted", question_id=question_id)
            return True

    def complete(self, question_id: int, data: Union[ReviewRequest, Mapping[str, Any]]) -> Question:
        payload = self._validate(ReviewRequest, data)
        with self._lock:
            self._require_initialized()
            index = self._index_of(question_id)
            result = self._replace_at(
                index,
                apply_completion(self._questions[index], payload.difficulty, payload.notes, now=self._now()),
            )
            logger.info(
                "question_completed",
                question_id=question_id,
                difficulty=payload.difficulty.value,
                next_review_at=result.next_review_at.isoformat() if result.next_review_at else None,
            )
            return result

    def review(self, question_id: int, data: Union[ReviewRequest, Mapping[str, Any]]) -> Question:
        payload = self._validate(ReviewRequest, data)
        with self._lock:
            self._require_initialized()
            index = self._index_of(question_id)
            result = self._replace_at(
                index,
                apply_review(self._questions[index], payload.difficulty, payload.notes, now=self._now()),
            )
            logger.info(
                "question_reviewed",
                question_id=question_id,
                difficulty=payload.difficulty.value,
                review_count=result.review_count,
                status=result.status.value,
            )
            return result

    def reset(self, question_id: int) -> Question:
        with self._lock:
            self._require_initialized()
            index = self._index_of(question_id)
            result = self._replace_at(index, apply_reset(self._questions[index]))
            logger.info("question_reset", question_id=question_id)
            return result

    # --- derived ---
    def get_due_questions(self) -> DueSet:
        with self._lock:
            today = calendar_date(self._now())
            return get_due_set(self.all_questions(), today, upcoming_days=self.upcoming_days)

    def get_stats(self) -> StatsResponse:
        """Derived counters for the dashboard.

        - completed: completed または under_review
        - completed_this_week: first_completed_at が直近7日（時刻込みで比較）
        - reviewed_this_week: review_count > 1 かつ last_reviewed_at が直近7日。
          last_reviewed_at == first_completed_at（初回完了そのもの）は数えない
        """
        with self._lock:
            now = self._now()
            week_ago = now - timedelta(days=7)
            today = calendar_date(now)
            stats = StatsResponse(total_questions=len(self._questions))
            for q in self._questions:
                if q.status in (QuestionStatus.completed, QuestionStatus.under_review):
                    stats.completed += 1
                if q.status is QuestionStatus.under_review:
                    stats.in_review += 1
                due = classify_due(q.next_review_at, today)
                if due is DueStatus.due_today:
                    stats.due_today += 1
                elif due is DueStatus.overdue:
                    stats.overdue += 1
                if q.first_completed_at is not None and q.first_completed_at >= week_ago:
                    stats.completed_this_week += 1
                if (
                    q.last_reviewed_at is not None
                    and q.last_reviewed_at >= week_ago
                    and q.review_count > 1
                    and q.last_reviewed_at != q.first_completed_at
                ):
                    stats.reviewed_this_week += 1
            return stats
