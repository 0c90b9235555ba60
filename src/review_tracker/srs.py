from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .clock import calendar_date, local_midnight, local_now
from .models import Difficulty, Question, QuestionStatus


# 復習間隔（日）: 1 → 3 → 7 → 14 → 30 → 90
INTERVAL_DAYS: tuple[int, ...] = (1, 3, 7, 14, 30, 90)


def compute_next_review(
    review_count: int,
    difficulty: Difficulty | str,
    *,
    now: Optional[datetime] = None,
) -> datetime:
    """Return local midnight of the day the next review falls on.

    - review_count は表の範囲にクランプ（エラーにはしない）
    - hard の場合は回数に関係なく最短間隔（1日）へ戻す
    - 返り値は暦日単位（時刻 00:00:00）のため、比較は日付のみで行える
    """
    index = min(max(int(review_count), 0), len(INTERVAL_DAYS) - 1)
    if Difficulty(difficulty) is Difficulty.hard:
        index = 0
    today = calendar_date(now or local_now())
    return local_midnight(today + timedelta(days=INTERVAL_DAYS[index]))


def _merge_notes(current: str, supplied: Optional[str]) -> str:
    return supplied if supplied else current


def apply_completion(
    question: Question,
    difficulty: Difficulty | str,
    notes: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Question:
    """First completion: not_started → under_review with a fresh review cycle."""
    now = now or local_now()
    difficulty = Difficulty(difficulty)
    return question.model_copy(
        update={
            "status": QuestionStatus.under_review,
            "first_completed_at": question.first_completed_at or now,
            "last_reviewed_at": now,
            "next_review_at": compute_next_review(0, difficulty, now=now),
            "review_count": 1,
            "difficulty_history": [difficulty],
            "notes": _merge_notes(question.notes, notes),
        }
    )


def apply_review(
    question: Question,
    difficulty: Difficulty | str,
    notes: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Question:
    """Subsequent review.

    次回日は「加算前」の review_count で計算する。hard なら needs_attention、
    それ以外は under_review に遷移する。
    """
    now = now or local_now()
    difficulty = Difficulty(difficulty)
    status = QuestionStatus.needs_attention if difficulty is Difficulty.hard else QuestionStatus.under_review
    return question.model_copy(
        update={
            "status": status,
            "last_reviewed_at": now,
            "next_review_at": compute_next_review(question.review_count, difficulty, now=now),
            "review_count": question.review_count + 1,
            "difficulty_history": [*question.difficulty_history, difficulty],
            "notes": _merge_notes(question.notes, notes),
        }
    )


def apply_reset(question: Question) -> Question:
    # id/name/category/url/notes は保持
    return question.model_copy(
        update={
            "status": QuestionStatus.not_started,
            "first_completed_at": None,
            "last_reviewed_at": None,
            "next_review_at": None,
            "review_count": 0,
            "difficulty_history": [],
        }
    )
