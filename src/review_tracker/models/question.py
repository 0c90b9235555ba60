from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, Field, field_validator

from ..clock import parse_timestamp
from ..config import settings
from .common import CamelModel, Difficulty, QuestionStatus


NAME_MAX_LENGTH = 200
CATEGORY_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 1000


def validate_problem_url(value: str) -> str:
    """Accept only http(s) URLs pointing at a problem page of a known judge.

    判定は設定 `judge_url_markers`（既定: leetcode.com/problems/）の部分一致。
    """
    url = (value or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Must be a valid URL")
    if not any(marker in url for marker in settings.judge_url_markers):
        raise ValueError("Must be a valid problem URL on a supported judge site")
    return url


class Question(CamelModel):
    """A tracked interview question with its spaced-repetition state.

    - status: not_started → under_review / needs_attention（complete/review で遷移）
    - next_review_at: under_review / needs_attention の間だけ設定される
    - review_count と difficulty_history は完了/復習のたびに同時に伸びる
    """

    id: int = Field(gt=0)
    name: str
    category: str
    url: str
    status: QuestionStatus = QuestionStatus.not_started
    first_completed_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None
    review_count: int = Field(default=0, ge=0)
    difficulty_history: list[Difficulty] = Field(default_factory=list)
    notes: str = ""

    @field_validator("first_completed_at", "last_reviewed_at", "next_review_at", mode="before")
    @classmethod
    def _coerce_optional_timestamp(cls, value: object) -> datetime | None:
        # "" / "0" / 解析不能な文字列は未設定扱い（例外にしない）
        return parse_timestamp(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _coerce_notes(cls, value: object) -> str:
        return "" if value is None else str(value)


class QuestionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    category: str = Field(min_length=1, max_length=CATEGORY_MAX_LENGTH)
    url: str = Field(validation_alias=AliasChoices("url", "leetcodeUrl"))
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("name", "category", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return validate_problem_url(value)


class QuestionUpdate(CamelModel):
    """Partial update of the descriptive fields. Review fields are never touched here."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    category: Optional[str] = Field(default=None, min_length=1, max_length=CATEGORY_MAX_LENGTH)
    url: Optional[str] = Field(default=None, validation_alias=AliasChoices("url", "leetcodeUrl"))
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("name", "category", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        return validate_problem_url(value) if value is not None else None


class ReviewRequest(CamelModel):
    """Self-reported difficulty for a completion or a review.

    notes は空でなければ既存メモを置き換え、空/未指定なら既存メモを維持する。
    """

    difficulty: Difficulty
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)


class QuestionFilters(CamelModel):
    category: Optional[str] = None
    status: Optional[QuestionStatus] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1)


class QuestionResponse(CamelModel):
    question: Question


class QuestionsResponse(CamelModel):
    questions: list[Question]
    total: int
    page: int


class DueQuestionsResponse(CamelModel):
    """Due set for the review queue.

    - questions: 今日が復習日のもの
    - overdue: 復習日を過ぎたもの（超過日数の多い順）
    - upcoming: 明日〜数日以内に復習日が来るもの（日付昇順）
    """

    questions: list[Question]
    overdue: list[Question]
    upcoming: list[Question] = []


class StatsResponse(CamelModel):
    total_questions: int = 0
    completed: int = 0
    in_review: int = 0
    due_today: int = 0
    overdue: int = 0
    completed_this_week: int = 0
    reviewed_this_week: int = 0


class DeleteResponse(CamelModel):
    success: bool


class RefreshResponse(CamelModel):
    message: str
    total: int
