from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import Settings
from ..deps import get_app_settings, get_store
from ..errors import DuplicateUrlError, InvalidInputError, QuestionNotFoundError
from ..models import (
    DeleteResponse,
    DueQuestionsResponse,
    QuestionCreate,
    QuestionFilters,
    QuestionResponse,
    QuestionsResponse,
    QuestionStatus,
    QuestionUpdate,
    RefreshResponse,
    ReviewRequest,
)
from ..store import QuestionStore

router = APIRouter(tags=["questions"])

# 利用者向けの文言は固定し、内部表現（例外メッセージ等）は返さない
NOT_FOUND_DETAIL = "question not found"
DUPLICATE_URL_DETAIL = "question with this URL already exists"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)


def _duplicate_url() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_URL_DETAIL)


def _invalid_input() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid input")


@router.get("/questions", response_model=QuestionsResponse, summary="問題一覧（カテゴリ/状態で絞り込み、ページング）")
async def list_questions(
    category: Optional[str] = Query(default=None),
    status_filter: Optional[QuestionStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    store: QuestionStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> QuestionsResponse:
    filters = QuestionFilters(
        category=category,
        status=status_filter,
        page=page,
        limit=limit or settings.default_page_limit,
    )
    return store.list_questions(filters)


@router.get("/questions/due", response_model=DueQuestionsResponse, summary="本日の復習・期限切れ・近日の復習")
async def due_questions(store: QuestionStore = Depends(get_store)) -> DueQuestionsResponse:
    due = store.get_due_questions()
    return DueQuestionsResponse(questions=due.due_today, overdue=due.overdue, upcoming=due.upcoming)


@router.post("/questions/refresh", response_model=RefreshResponse, summary="CSV から再読み込み")
async def refresh_questions(store: QuestionStore = Depends(get_store)) -> RefreshResponse:
    store.reload(force=True)
    total = store.count()
    return RefreshResponse(message="Data refreshed from CSV file successfully", total=total)


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(question_id: int, store: QuestionStore = Depends(get_store)) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.get_by_id(question_id))
    except QuestionNotFoundError:
        raise _not_found()


@router.post(
    "/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="問題を追加",
)
async def create_question(req: QuestionCreate, store: QuestionStore = Depends(get_store)) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.create(req))
    except DuplicateUrlError:
        raise _duplicate_url()
    except InvalidInputError:
        raise _invalid_input()


@router.put("/questions/{question_id}", response_model=QuestionResponse, summary="名称/カテゴリ/URL/メモを更新")
async def update_question(
    question_id: int, req: QuestionUpdate, store: QuestionStore = Depends(get_store)
) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.update(question_id, req))
    except QuestionNotFoundError:
        raise _not_found()
    except DuplicateUrlError:
        raise _duplicate_url()
    except InvalidInputError:
        raise _invalid_input()


@router.delete("/questions/{question_id}", response_model=DeleteResponse)
async def delete_question(question_id: int, store: QuestionStore = Depends(get_store)) -> DeleteResponse:
    if not store.delete(question_id):
        raise _not_found()
    return DeleteResponse(success=True)


@router.post("/questions/{question_id}/complete", response_model=QuestionResponse, summary="初回完了を記録")
async def complete_question(
    question_id: int, req: ReviewRequest, store: QuestionStore = Depends(get_store)
) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.complete(question_id, req))
    except QuestionNotFoundError:
        raise _not_found()


@router.post("/questions/{question_id}/review", response_model=QuestionResponse, summary="復習結果を記録して次回日を更新")
async def review_question(
    question_id: int, req: ReviewRequest, store: QuestionStore = Depends(get_store)
) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.review(question_id, req))
    except QuestionNotFoundError:
        raise _not_found()


@router.post("/questions/{question_id}/reset", response_model=QuestionResponse, summary="未着手に戻す")
async def reset_question(question_id: int, store: QuestionStore = Depends(get_store)) -> QuestionResponse:
    try:
        return QuestionResponse(question=store.reset(question_id))
    except QuestionNotFoundError:
        raise _not_found()
