from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from .clock import Clock, local_now
from .config import Settings, settings as default_settings
from .logging import configure_logging, logger
from .middleware import AccessLogMiddleware, RequestIDMiddleware
from .routers import health, questions, stats
from .store import QuestionStore, SnapshotWatcher, create_store


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    # 内部表現（スタックや例外文言）はレスポンスに含めずログにのみ残す
    logger.error(
        "unhandled_error",
        path=request.url.path,
        error_type=exc.__class__.__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


def _cors_origins(app_settings: Settings) -> tuple[list[str], bool]:
    configured = list(app_settings.allowed_cors_origins)
    if configured:
        return configured, True
    if app_settings.is_development:
        # 開発時は Vite などローカルのフロントエンドから叩けるよう全許可（資格情報なし）
        return ["*"], False
    return [], False


def create_app(
    app_settings: Optional[Settings] = None,
    *,
    store: Optional[QuestionStore] = None,
    clock: Clock = local_now,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    QuestionStore はアプリごとに1つだけ生成し、app.state 経由で依存注入する。
    起動時に CSV を読み込み（initialize）、必要ならバックアップを作成し、
    外部編集検知のポーリングを開始する。
    """
    app_settings = app_settings or default_settings
    configure_logging(app_settings.log_level)
    question_store = store or create_store(app_settings, clock=clock)
    watcher = SnapshotWatcher(question_store, app_settings.snapshot_poll_interval_sec)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        question_store.initialize()
        if app_settings.backup_enabled:
            backup = getattr(question_store.repository, "create_backup", None)
            if backup is not None:
                backup()
        watcher.start()
        logger.info(
            "app_started",
            environment=app_settings.environment,
            csv_path=str(app_settings.csv_path),
            snapshot_polling=watcher.running,
        )
        try:
            yield
        finally:
            await watcher.stop()

    app = FastAPI(title="Review Tracker API", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.question_store = question_store
    app.state.snapshot_watcher = watcher

    origins, allow_credentials = _cors_origins(app_settings)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=allow_credentials,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )
    # Starlette では後から追加したミドルウェアが外側。RequestID を最外周に置き、
    # AccessLog が request_id を参照できるようにする。
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(health.router)
    app.include_router(questions.router, prefix="/api")
    app.include_router(stats.router, prefix="/api")
    return app


app = create_app()
