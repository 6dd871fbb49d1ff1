"""
Flask Application Factory - Gujarat RERA Projects API

Serves the project read API, the ingestion trigger/status API and the
admin data-management endpoints. Ingestion runs execute on a background
thread (services/ingestion_runner.py).
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from models.database import db

# Initialize Flask-Migrate (bound in create_app)
migrate = Migrate()


def configure_logging(level_name: str = 'INFO'):
    """Root logging config, shared by the web app and the CLI."""
    level = getattr(logging, (level_name or 'INFO').upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    # urllib3 logs every pooled connection at DEBUG
    logging.getLogger('urllib3').setLevel(max(level, logging.WARNING))


def _schema_creation_allowed(app) -> bool:
    env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
    return bool(app.config.get("TESTING")) or env not in {"prod", "production"}


def _init_database(app):
    """Create tables outside production, then close out runs a dead process left open."""
    with app.app_context():
        from models.project import Project  # noqa: F401
        from models.ingestion_run import IngestionRun  # noqa: F401
        from services.ingestion_runner import recover_stale_runs

        if _schema_creation_allowed(app):
            db.create_all()
            print("   ✓ Database initialized")
        else:
            print("   ✓ Database ready (run 'flask db upgrade' for schema changes)")

        recovered = recover_stale_runs()
        if recovered:
            print(f"   ⚠ Marked {recovered} interrupted ingestion run(s) as Failed")


def _register_routes(app, limiter):
    from routes.admin import admin_bp
    from routes.analytics import analytics_bp
    from routes.ingestion import ingestion_bp
    from routes.projects import projects_bp
    from utils.rate_limiter import apply_blueprint_limits

    apply_blueprint_limits(limiter, [
        (projects_bp, "read", None),
        (analytics_bp, "analytics", None),
        (ingestion_bp, "trigger", ["POST"]),
        (admin_bp, "admin", None),
    ])

    for blueprint in (projects_bp, analytics_bp, ingestion_bp, admin_bp):
        app.register_blueprint(blueprint, url_prefix='/api')
    print("   ✓ Routes registered")


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app.config.get('LOG_LEVEL'))

    # Read API is public; admin calls authenticate with X-Admin-Token
    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "POST", "OPTIONS", "DELETE"],
         allow_headers=["Content-Type", "X-Request-ID", "X-Admin-Token"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False,
         send_wildcard=True)

    from api.middleware import setup_error_handlers, setup_request_context
    setup_request_context(app)
    setup_error_handlers(app)

    db.init_app(app)
    migrate.init_app(app, db)

    from utils.rate_limiter import init_limiter
    limiter = init_limiter(app)
    app.limiter = limiter
    print("   ✓ Rate limiter initialized")

    _init_database(app)
    _register_routes(app, limiter)

    @app.route("/", methods=["GET"])
    def index():
        from models.project import Project

        count = db.session.query(Project).count()
        return jsonify({
            "name": "Gujarat RERA Projects API",
            "status": "running",
            "data_loaded": count > 0,
            "row_count": count,
        })

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    print("=" * 60)
    print("Starting Flask API - Gujarat RERA Projects")
    print("=" * 60)

    app = create_app()

    with app.app_context():
        from services.project_repository import ProjectRepository

        repo = ProjectRepository()
        print("\n📊 Database Status:")
        for row in repo.count_by_city():
            print(f"   {row['city']}: {row['count']:,} projects")
        for provenance, count in repo.provenance_counts().items():
            print(f"   {provenance}: {count:,}")

    print("=" * 60)
    app.run(debug=app.config.get('DEBUG', False), host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))


if __name__ == "__main__":
    run_app()
