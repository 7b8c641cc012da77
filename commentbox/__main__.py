"""Run the API with uvicorn: ``python -m commentbox``."""

import uvicorn

from commentbox.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "commentbox.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        # Logging is configured by create_app through structlog
        log_config=None,
        # Forwarded headers are resolved by the app against TRUSTED_PROXIES
        proxy_headers=False,
    )


if __name__ == "__main__":
    main()
