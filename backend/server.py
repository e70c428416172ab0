"""Run the API with uvicorn: ``python server.py`` from the backend directory."""

import logging

import uvicorn

from app.main import app


def main() -> None:
    settings = app.state.settings
    logging.basicConfig(level=settings.log_level)
    logging.getLogger(__name__).info("Server is running on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
