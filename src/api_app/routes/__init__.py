"""
Orders API - Modular Blueprint Structure

Each module handles a specific resource; all of them hang off `api_bp`.
"""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("api", __name__)

# Import and register sub-blueprints
from .orders import orders_bp  # noqa: E402
from .tables import tables_bp  # noqa: E402

api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(tables_bp)
