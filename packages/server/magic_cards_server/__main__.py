"""Run the funnel API with uvicorn."""

import uvicorn

from magic_cards_server.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "magic_cards_server.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
