"""Interview question practice tracker with spaced-repetition review scheduling."""

__version__ = "0.1.0"
