from __future__ import annotations

import asyncio
import csv
import contextlib
from typing import Optional

from ..logging import logger
from .question_store import QuestionStore


class SnapshotWatcher:
    """Poll the CSV snapshot and reload the store after external edits.

    自分の書き込みは QuestionStore 側の write token で除外されるため、ここでは
    一定間隔で sync_from_snapshot() を呼ぶだけでよい。interval_sec <= 0 なら無効。
    """

    def __init__(self, store: QuestionStore, interval_sec: float) -> None:
        self._store = store
        self.interval_sec = interval_sec
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def poll_once(self) -> bool:
        try:
            return self._store.sync_from_snapshot()
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            # 手編集中の一時的な読込失敗でループを止めない。次の周期で再試行する
            logger.warning("snapshot_sync_failed", error=repr(exc))
            return False

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            self.poll_once()

    def start(self) -> None:
        if self.interval_sec <= 0 or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
