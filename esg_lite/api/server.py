import uvicorn

from esg_lite.config.settings import Settings


def main() -> None:
    """Entry point: serve the API with uvicorn."""
    settings = Settings()
    uvicorn.run(
        "esg_lite.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
