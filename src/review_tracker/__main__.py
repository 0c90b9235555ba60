import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run("review_tracker.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
