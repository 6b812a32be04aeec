"""Run the API server with the host and port from config.yaml.

Usage (from the backend directory): python -m app
"""

import sys

import uvicorn

from .services.config import config_service, ConfigValidationException

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3002


def main() -> None:
    """Start uvicorn on the configured server address."""
    try:
        config_service.load_and_validate()
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        sys.exit(1)

    uvicorn.run(
        "app.main:app",
        host=config_service.get("server.host", DEFAULT_HOST),
        port=config_service.get("server.port", DEFAULT_PORT),
    )


if __name__ == "__main__":
    main()
