"""API package wiring for PantryLens backend."""

from flask import Flask

from .inventory import bp as inventory_bp
from .recipes import bp as recipes_bp
from .recognize import bp as recognize_bp


def init_app(app: Flask) -> None:
    """Register all API blueprints on the given application."""

    app.register_blueprint(inventory_bp)
    app.register_blueprint(recognize_bp)
    app.register_blueprint(recipes_bp)
