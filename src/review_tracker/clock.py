"""Local-time helpers shared by the scheduler, the due classifier and the CSV adapter.

復習日は「ローカルの暦日」で扱う。タイムスタンプは常にタイムゾーン付き
（aware）に正規化し、日付比較の前にローカル時刻へ変換してから時刻部分を落とす。
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Callable

Clock = Callable[[], datetime]

# CSV で「未設定」を表す値
_ABSENT_MARKERS = frozenset({"", "0"})


def local_now() -> datetime:
    return datetime.now().astimezone()


def to_local(value: datetime) -> datetime:
    """Return an aware datetime in local time; naive input is taken as local."""
    return value.astimezone()


def calendar_date(value: datetime) -> date:
    return to_local(value).date()


def local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min).astimezone()


def parse_timestamp(value: object) -> datetime | None:
    """Parse an optional timestamp, returning None for anything unusable.

    - None / "" / "0" は未設定として None
    - ISO 8601 文字列（末尾 Z 可）は aware datetime に変換
    - 解析できない文字列や想定外の型も例外を出さず None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text in _ABSENT_MARKERS:
        return None
    try:
        return to_local(datetime.fromisoformat(text))
    except (ValueError, OverflowError, OSError):
        # 範囲外の日付は astimezone() で OverflowError/OSError になりうる
        return None


def format_timestamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""
