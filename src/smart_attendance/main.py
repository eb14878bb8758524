from __future__ import annotations

import atexit
import importlib
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, send_from_directory
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .common.web import domain_error_response, json_error
from .container import Container, build_container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .attendance.controller import register as register_attendance
from .courses.controller import register as register_courses
from .reports.controller import register as register_reports
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def _settings_dict(settings) -> dict:
    return {name: getattr(settings, name) for name in dir(settings) if name.isupper()}


def setup_logging(app: Flask) -> None:
    """File log under logs/ outside debug/testing; stderr otherwise."""
    level = logging.DEBUG if app.debug else logging.INFO
    logging.getLogger("smart_attendance").setLevel(level)

    if not app.debug and not app.testing:
        log_dir = app.config.get("LOG_DIR", "logs")
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)

        file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]")
        )
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger("smart_attendance").addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info("Smart attendance startup")


def register_error_handlers(app: Flask) -> None:
    app.register_error_handler(DomainError, domain_error_response)

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return json_error(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logger.exception("Unhandled error")
        if app.debug:
            return json_error(f"Internal error: {error}", 500)
        return json_error("Internal error. Please try again.", 500)


def register_media(app: Flask, container: Container) -> None:
    storage_root = getattr(container.storage, "root", None)
    if storage_root is None:
        return
    media_url = str(app.config.get("MEDIA_URL", "/media/")).rstrip("/")

    @app.route(f"{media_url}/<path:key>", methods=["GET"], endpoint="media")
    def media(key: str):
        return send_from_directory(storage_root, key)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    options = _settings_dict(settings)
    app.config.update(options)
    app.secret_key = options["SECRET_KEY"]
    app.config["DEBUG"] = bool(options.get("DEBUG", False))
    app.config["TESTING"] = bool(options.get("TESTING", False))

    setup_logging(app)

    if container is None:
        db_config = options["DB_CONFIG"]
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if options.get("AUTO_INIT_DB"):
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(db_config=db_config, options=options)

    app.extensions["smart_attendance"] = container
    atexit.register(container.sessions.stop_all)

    register_error_handlers(app)
    register_users(app, container)
    register_courses(app, container)
    register_attendance(app, container)
    register_reports(app, container)
    register_media(app, container)

    return app
