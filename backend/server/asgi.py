"""
ASGI entry point.

Used by uvicorn:
    uvicorn server.asgi:app --app-dir backend

Or run directly (LOG_LEVEL sets uvicorn's level):
    cd backend && python -m server.asgi

`.env` is loaded before the config is read.
"""

from dotenv import load_dotenv

load_dotenv()

from config import AppConfig  # pylint: disable=wrong-import-position
from server.app import create_app  # pylint: disable=wrong-import-position

config = AppConfig.load_from_env()
app = create_app(config)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=config.uvicorn_log_level,
    )
