from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class QuestionStatus(str, Enum):
    not_started = "not_started"
    completed = "completed"
    under_review = "under_review"
    needs_attention = "needs_attention"


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the API side.

    Python 側は snake_case、JSON 側は camelCase（例: review_count -> reviewCount）。
    populate_by_name でどちらの名前からも構築できる。
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
