"""Configuration module for the backend."""
import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _csv_list(value: str):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key")
    JWT_SECRET_KEY = SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_ALGORITHM = "HS256"

    CORS_ORIGINS = _csv_list(os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"))

    LOG_PATH = os.getenv("LOG_PATH", os.path.join(os.getcwd(), 'logs'))

    # Catalog backend: "sql" (local database) or "woocommerce" (REST API)
    CATALOG_BACKEND = os.getenv("CATALOG_BACKEND", "sql")

    # WooCommerce Configuration
    WOOCOMMERCE_URL = os.getenv("WOOCOMMERCE_URL")
    WOOCOMMERCE_CONSUMER_KEY = os.getenv("WOOCOMMERCE_CONSUMER_KEY")
    WOOCOMMERCE_CONSUMER_SECRET = os.getenv("WOOCOMMERCE_CONSUMER_SECRET")
    WOOCOMMERCE_TIMEOUT = int(os.getenv("WOOCOMMERCE_TIMEOUT", "30"))
    WOOCOMMERCE_MAX_RETRIES = int(os.getenv("WOOCOMMERCE_MAX_RETRIES", "3"))
    WOOCOMMERCE_PER_PAGE = int(os.getenv("WOOCOMMERCE_PER_PAGE", "100"))

    # Cleanup operations
    DEDUP_STATUSES = _csv_list(os.getenv("DEDUP_STATUSES", "publish,pending,draft,private"))
    IMAGE_REVIEW_BATCH_LIMIT = int(os.getenv("IMAGE_REVIEW_BATCH_LIMIT", "1000"))
    IMAGE_REVIEW_TARGET_STATUS = os.getenv("IMAGE_REVIEW_TARGET_STATUS", "pending")
    CLEANUP_CAPABILITY = os.getenv("CLEANUP_CAPABILITY", "manage_catalog")
    ACTION_TOKEN_TTL = int(os.getenv("ACTION_TOKEN_TTL", "900"))  # 15 minutes
    SUMMARY_RUN_LIMIT = int(os.getenv("SUMMARY_RUN_LIMIT", "10"))

    # Database configuration
    DATABASE_URL = os.getenv("DATABASE_URL")
    DATABASE_POOL_SIZE = int(os.getenv("DATABASE_POOL_SIZE", "10"))
    DATABASE_MAX_OVERFLOW = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))
    DATABASE_POOL_RECYCLE = int(os.getenv("DATABASE_POOL_RECYCLE", "3600"))
    DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"
    DATABASE_CREATE_TABLES = os.getenv("DATABASE_CREATE_TABLES", "true").lower() == "true"

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False

    # Default to SQLite for development
    DATABASE_URL = Config.DATABASE_URL or "sqlite:///{}".format(
        os.path.join(os.path.dirname(os.path.abspath(__file__)), 'dev_database.db')
    )

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    DATABASE_ECHO = False  # Disable SQL logging in production
    DATABASE_CREATE_TABLES = os.getenv("DATABASE_CREATE_TABLES", "false").lower() == "true"

class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True

    JWT_SECRET_KEY = "test-secret-key"
    DATABASE_URL = "sqlite:///:memory:"
    CATALOG_BACKEND = "sql"
    LOG_PATH = None

# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
