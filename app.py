import os
from dotenv import load_dotenv

# Load environment variables FIRST before any other imports
load_dotenv()

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
import logging
import time
from logging.handlers import RotatingFileHandler

from config import config
from database import DatabaseManager
from cleanup_api import cleanup_bp
from repositories import SqlCatalogHost
from security import ActionTokenStore
from services import CatalogCleanupService, WooCommerceCatalogHost


def setup_logging(app: Flask) -> None:
    """Configure application logging."""
    log_path = app.config.get('LOG_PATH')
    if log_path:
        try:
            os.makedirs(log_path, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_path, 'app.log'),
                maxBytes=10240000,  # 10MB
                backupCount=10
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)
            app.logger.info('Backend startup - file logging configured')
        except (PermissionError, OSError):
            # File system is read-only - use console logging only
            app.logger.warning("Log path not writable, using console logging only")

    app.logger.setLevel(logging.INFO)


def init_db(app: Flask):
    """Initialize the database used by the SQL catalog and the run history."""
    db = DatabaseManager.from_config(app.config)
    try:
        db.initialize(create_tables=app.config.get('DATABASE_CREATE_TABLES', True))
    except Exception as e:
        app.logger.error(f"Failed to initialize database: {e}")
        if not app.config.get('DEBUG') and not app.config.get('TESTING'):
            raise
        app.logger.warning("Database initialization failed in development - continuing")
    return db


def build_catalog_host(app: Flask, db: DatabaseManager):
    """Select the catalog host from CATALOG_BACKEND."""
    backend = app.config.get('CATALOG_BACKEND', 'sql')
    if backend == 'woocommerce':
        host = WooCommerceCatalogHost.from_config(app.config)
        if not host.is_configured:
            app.logger.warning("WooCommerce backend selected but credentials are missing")
        return host
    if backend == 'sql':
        return SqlCatalogHost(db)

    app.logger.error(f"Unknown catalog backend '{backend}', cleanup operations disabled")
    return None


def create_app(config_name: str = None, catalog_host=None) -> Flask:
    """Application factory."""
    app = Flask(__name__)
    app.config.from_object(config[config_name or os.getenv('FLASK_ENV', 'development')])

    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Action-Token"],
         methods=["GET", "POST", "OPTIONS"])

    JWTManager(app)
    setup_logging(app)

    db = init_db(app)
    host = catalog_host if catalog_host is not None else build_catalog_host(app, db)

    app.extensions['catalog_cleanup'] = {
        'db': db,
        'host': host,
        'service': CatalogCleanupService.from_config(host, app.config),
        'tokens': ActionTokenStore(ttl_seconds=app.config['ACTION_TOKEN_TTL'])
    }

    app.register_blueprint(cleanup_bp)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint for load balancers."""
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "services": {}
        }

        health_status["services"]["database"] = db.health_check()["status"] if db.is_initialized else "unavailable"

        if host is None:
            health_status["services"]["catalog"] = "unconfigured"
        else:
            health_status["services"]["catalog"] = "healthy" if host.is_available() else "unavailable"

        if health_status["services"]["catalog"] != "healthy":
            health_status["status"] = "degraded"

        # Return 200 even if degraded for basic liveness
        return jsonify(health_status), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'message': 'Resource not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        logging.error(f"Internal error: {error}")
        return jsonify({'message': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    application = create_app()
    port = int(os.getenv('PORT', 5000))
    application.run(host='0.0.0.0', port=port, debug=application.config.get('DEBUG', False))
