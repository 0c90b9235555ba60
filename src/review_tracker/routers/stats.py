from fastapi import APIRouter, Depends

from ..deps import get_store
from ..models import StatsResponse
from ..store import QuestionStore

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsResponse, summary="ダッシュボード用の集計")
async def get_stats(store: QuestionStore = Depends(get_store)) -> StatsResponse:
    """Return derived counters (total / completed / in review / due / this week)."""
    return store.get_stats()
