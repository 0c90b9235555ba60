from . import health, questions, stats

__all__ = ["health", "questions", "stats"]
