"""Entry point for running the API server.

Usage:
    python -m recipe_api
"""

import uvicorn

from recipe_api.core.config import settings


def main() -> None:
    """Run the API server."""
    uvicorn.run(
        "recipe_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
