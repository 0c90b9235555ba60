from __future__ import annotations


class TrackerError(Exception):
    pass


class QuestionNotFoundError(TrackerError):
    def __init__(self, question_id: int):
        self.question_id = question_id
        super().__init__(f"Question not found (id={question_id})")


class DuplicateUrlError(TrackerError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Question with this URL already exists (url='{url}')")


class InvalidInputError(TrackerError):
    """Caller-supplied data failed shape validation; nothing was written."""


class MalformedRecordError(TrackerError):
    """A persisted row could not be turned into a Question."""

    def __init__(self, reason: str, *, line: int | None = None):
        self.reason = reason
        self.line = line
        where = f" at line {line}" if line is not None else ""
        super().__init__(f"Malformed record{where}: {reason}")


class StoreNotInitializedError(TrackerError):
    def __init__(self):
        super().__init__("QuestionStore.initialize() must run before mutating operations")
