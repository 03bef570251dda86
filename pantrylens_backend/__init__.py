import logging
import os

from flask import Flask, jsonify
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pantrylens_backend.api import init_app as init_api
from pantrylens_backend.config import (
    DEFAULT_RECIPE_MAX_OUTPUT_TOKENS,
    DEFAULT_RECIPE_MODEL,
    DEFAULT_VISION_MAX_OUTPUT_TOKENS,
    DEFAULT_VISION_MODEL,
)
from pantrylens_backend.models import get_database_url
from pantrylens_backend.services.llm import (
    TextLLMSettings,
    VisionLLMSettings,
    init_text_llm_client,
    init_vision_llm_client,
)
from pantrylens_backend.services.store import MemoryItemStore, SqlItemStore


def create_app() -> Flask:
    """Application factory for the PantryLens backend."""
    app = Flask(__name__)

    _configure_logging(app)
    _init_item_store(app)

    @app.get("/healthz")
    def healthcheck():
        return jsonify(status="ok")

    @app.get("/api/healthz")
    def api_healthcheck():
        return jsonify(status="ok")

    llm_api_key = os.environ.get("PANTRYLENS_LLM_API_KEY") or os.environ.get(
        "OPENAI_API_KEY"
    )

    if llm_api_key:
        app.extensions["vision_llm_client"] = init_vision_llm_client(
            VisionLLMSettings(
                api_key=llm_api_key,
                model=os.environ.get("PANTRYLENS_VISION_MODEL", DEFAULT_VISION_MODEL),
                max_output_tokens=_int_from_env(
                    app,
                    "PANTRYLENS_VISION_MAX_OUTPUT_TOKENS",
                    DEFAULT_VISION_MAX_OUTPUT_TOKENS,
                ),
            )
        )
        app.extensions["text_llm_client"] = init_text_llm_client(
            TextLLMSettings(
                api_key=llm_api_key,
                model=os.environ.get("PANTRYLENS_RECIPE_MODEL", DEFAULT_RECIPE_MODEL),
                max_output_tokens=_int_from_env(
                    app,
                    "PANTRYLENS_RECIPE_MAX_OUTPUT_TOKENS",
                    DEFAULT_RECIPE_MAX_OUTPUT_TOKENS,
                ),
            )
        )
    else:
        app.logger.warning(
            "PANTRYLENS_LLM_API_KEY/OPENAI_API_KEY not set; recognition and "
            "recipe endpoints disabled"
        )

    init_api(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Ensure application and root loggers emit logs at the configured level."""

    level_name = os.environ.get("PANTRYLENS_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level)
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)


def _int_from_env(app: Flask, name: str, default: int) -> int:
    raw_value = os.environ.get(name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError:
        app.logger.warning("ignoring invalid %s=%s", name, raw_value)
        return default
    if value <= 0:
        app.logger.warning("ignoring non-positive %s=%s", name, raw_value)
        return default
    return value


def _init_item_store(app: Flask) -> None:
    """Attach the inventory store, preferring the database when configured."""

    try:
        database_url = get_database_url()
    except RuntimeError:
        app.logger.info("DATABASE_URL not set; using in-memory inventory store")
        app.extensions["item_store"] = MemoryItemStore()
        return

    engine = create_engine(database_url, pool_pre_ping=True)
    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )
    app.extensions["db_engine"] = engine
    app.extensions["db_sessionmaker"] = SessionLocal
    app.extensions["item_store"] = SqlItemStore(SessionLocal)


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000)
