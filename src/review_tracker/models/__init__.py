from .common import CamelModel, Difficulty, QuestionStatus
from .question import (
    DeleteResponse,
    DueQuestionsResponse,
    Question,
    QuestionCreate,
    QuestionFilters,
    QuestionResponse,
    QuestionsResponse,
    QuestionUpdate,
    RefreshResponse,
    ReviewRequest,
    StatsResponse,
)

__all__ = [
    "CamelModel",
    "DeleteResponse",
    "Difficulty",
    "DueQuestionsResponse",
    "Question",
    "QuestionCreate",
    "QuestionFilters",
    "QuestionResponse",
    "QuestionStatus",
    "QuestionsResponse",
    "QuestionUpdate",
    "RefreshResponse",
    "ReviewRequest",
    "StatsResponse",
]
