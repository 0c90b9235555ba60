from __future__ import annotations

from typing import Any


def normalize_non_negative_int(value: Any) -> int:
    """与えられた値を非負整数に正規化する。

    CSV を手で編集すると review_count が空欄や負値になりうるため、読み込み時に
    ゼロ以上へ矯正しておく。"""

    try:
        ivalue = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return ivalue if ivalue >= 0 else 0


def split_history(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip().lower() for part in raw.split(",") if part.strip()]
