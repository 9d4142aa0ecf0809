"""
Blueprint registration for the academic platform.

All blueprints are registered without URL prefixes; every route spells out
its full /api path.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.academics import BLUEPRINTS as academic_bps
    from blueprints.notifications import bp as notifications_bp, events_bp
    from blueprints.settings import bp as settings_bp
    from blueprints.users import bp as users_bp

    app.register_blueprint(users_bp)
    for bp in academic_bps:
        app.register_blueprint(bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(settings_bp)
