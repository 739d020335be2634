"""
Factory for the Orders API Service (REST).
Serves the order lifecycle endpoints under /api.

Tenant and user identity arrive as headers from the upstream gateway.
"""

from __future__ import annotations

from flask import Flask, jsonify
from flask_cors import CORS

from api_app.routes import api_bp
from revo_orders.config import AppConfig, load_config
from revo_orders.db import init_db, init_engine
from revo_orders.error_handlers import register_error_handlers
from revo_orders.logging_config import configure_logging
from revo_orders.models import Base


def create_app(config: AppConfig | None = None) -> Flask:
    app = Flask(__name__)
    config = config or load_config("revo-orders-api")

    configure_logging(config.app_name, config.log_level)

    # Database
    init_engine(config)
    init_db(Base.metadata)

    # Basic Config
    app.config["APP_NAME"] = "Revo Orders API"
    app.config["DEBUG"] = config.get_bool("flask_debug")

    app.register_blueprint(api_bp, url_prefix="/api")

    # Error Handlers
    register_error_handlers(app)

    # CORS
    if config.cors_origins:
        CORS(app, resources={r"/api/*": {"origins": config.cors_origins}})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "service": config.app_name}), 200

    app.logger.info("Orders API initialized")
    return app
