from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logging_utils import configure_logging
from .container import build_container
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)

SETTING_NAMES = (
    "ORG_UTC_OFFSET_MINUTES",
    "MAPMYINDIA_API_KEY",
    "MAPMYINDIA_API_BASE",
    "LOCATION_VERIFY_TIMEOUT_SECONDS",
    "LOCATION_MIN_CONFIDENCE",
    "LOCATION_MAX_ACCURACY_METERS",
)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    container = build_container(
        db_config=db_config,
        settings={name: getattr(settings, name) for name in SETTING_NAMES if hasattr(settings, name)},
    )
    if not container.verifier.is_configured:
        logger.warning("MAPMYINDIA_API_KEY is not set; location-required check-ins will be rejected")

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(container.conn, schema_path=schema_path)
        logger.info("schema ready (tables=%s)", len(list_tables(container.conn)))

    register_attendance(app, container)

    return app
