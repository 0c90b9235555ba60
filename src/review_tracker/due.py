"""Calendar-day due classification.

すべての比較はローカル暦日で行い、時刻部分は捨てる。同じ日の異なる時刻は
同じ分類になる。未設定・解析不能な日付は「期限なし」として扱い、例外は出さない。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, List, Optional

from .clock import calendar_date, parse_timestamp
from .models import Question


DEFAULT_UPCOMING_DAYS = 3


class DueStatus(str, Enum):
    not_due = "not_due"
    due_today = "due_today"
    overdue = "overdue"


@dataclass
class DueSet:
    due_today: List[Question] = field(default_factory=list)
    overdue: List[Question] = field(default_factory=list)
    upcoming: List[Question] = field(default_factory=list)


def review_date(value: object) -> Optional[date]:
    """Calendar date of a review timestamp, or None when absent/invalid."""
    parsed = parse_timestamp(value)
    return calendar_date(parsed) if parsed is not None else None


def classify_due(value: object, today: date) -> DueStatus:
    day = review_date(value)
    if day is None or day > today:
        return DueStatus.not_due
    if day == today:
        return DueStatus.due_today
    return DueStatus.overdue


def days_overdue(value: object, today: date) -> int:
    """Whole days between the review date and today.

    0 if due today (or absent), negative if the review date is in the future.
    """
    day = review_date(value)
    if day is None:
        return 0
    return (today - day).days


def get_due_set(
    records: Iterable[Question],
    today: date,
    *,
    upcoming_days: int = DEFAULT_UPCOMING_DAYS,
) -> DueSet:
    """Partition records into due-today / overdue / upcoming buckets.

    - overdue: 超過日数の多い順（最も古いものが先頭）
    - upcoming: today < 復習日 <= today + upcoming_days を日付昇順
    """
    horizon = today + timedelta(days=upcoming_days)
    result = DueSet()
    overdue_keyed: list[tuple[int, int, Question]] = []
    upcoming_keyed: list[tuple[date, int, Question]] = []
    for position, question in enumerate(records):
        day = review_date(question.next_review_at)
        if day is None:
            continue
        if day == today:
            result.due_today.append(question)
        elif day < today:
            overdue_keyed.append(((today - day).days, position, question))
        elif day <= horizon:
            upcoming_keyed.append((day, position, question))
    # 同値の場合は元の並び順を維持する
    overdue_keyed.sort(key=lambda item: (-item[0], item[1]))
    upcoming_keyed.sort(key=lambda item: (item[0], item[1]))
    result.overdue = [q for _, _, q in overdue_keyed]
    result.upcoming = [q for _, _, q in upcoming_keyed]
    return result
