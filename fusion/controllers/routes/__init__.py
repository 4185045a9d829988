"""HTTP layer: blueprints, error handlers and route guards."""

from flask import Flask


def register_blueprints(app: Flask) -> None:
    """Attach every blueprint and the shared error handlers to ``app``."""
    from fusion.controllers.routes._error_handlers import register_error_handlers
    from fusion.controllers.routes.blueprints import register_all_blueprints

    register_error_handlers(app)
    register_all_blueprints(app)
