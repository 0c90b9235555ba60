from __future__ import annotations

from fastapi import Request

from .config import Settings
from .store import QuestionStore


def get_store(request: Request) -> QuestionStore:
    """create_app() が app.state に載せた唯一の QuestionStore を返す。"""
    return request.app.state.question_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
