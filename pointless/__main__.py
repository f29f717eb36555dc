import uvicorn

from .config import DEV, HOST, LOG_LEVEL, PORT


def main() -> None:
    uvicorn.run(
        "pointless.main:app",
        host=HOST,
        port=PORT,
        reload=DEV,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
