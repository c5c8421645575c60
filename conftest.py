"""Pytest configuration and fixtures for the test suite."""
import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock

from app import create_app
from catalog_host import CatalogHost
from database import DatabaseManager
from dedup_engine import ProductRecord
from models import Product
from repositories import SqlCatalogHost


BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture
def db():
    """Create an in-memory database with all tables."""
    manager = DatabaseManager('sqlite:///:memory:')
    manager.initialize(create_tables=True)
    yield manager
    manager.close()


@pytest.fixture
def add_product(db):
    """Insert a product; ``minutes`` sets its creation time relative to BASE_TIME."""
    def _add(title="Product", sku=None, status="publish", minutes=0, image="https://cdn.example.com/p.jpg"):
        with db.session_scope() as session:
            product = Product(
                title=title,
                sku=sku,
                status=status,
                featured_image_url=image,
                created_at=BASE_TIME + timedelta(minutes=minutes)
            )
            session.add(product)
            session.flush()
            return product.id
    return _add


@pytest.fixture
def sql_host(db):
    return SqlCatalogHost(db)


@pytest.fixture
def make_record():
    """Build ProductRecords with a creation order."""
    def _make(id, sku=None, title="", created=None, status="publish", has_image=True):
        return ProductRecord(
            id=id,
            title=title,
            sku=sku,
            created_order=created if created is not None else id,
            status=status,
            has_primary_image=has_image
        )
    return _make


@pytest.fixture
def mock_host():
    """Create a mock catalog host where every mutation succeeds."""
    host = Mock(spec=CatalogHost)
    host.name = "mock"
    host.is_available.return_value = True
    host.fetch_candidate_products.return_value = []
    host.fetch_products_without_primary_image.return_value = []
    host.remove_product.return_value = True
    host.set_product_status.return_value = True
    return host


@pytest.fixture
def app():
    """Create a test Flask application backed by an in-memory catalog."""
    application = create_app('testing')
    yield application
    application.extensions['catalog_cleanup']['db'].close()


@pytest.fixture
def app_db(app):
    return app.extensions['catalog_cleanup']['db']


@pytest.fixture
def client(app):
    """Create a test client for API testing."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def auth_headers(app):
    """Authentication headers for an operator allowed to run the cleanup."""
    with app.app_context():
        from flask_jwt_extended import create_access_token
        access_token = create_access_token(
            identity="operator-1",
            additional_claims={"capabilities": ["manage_catalog"]}
        )
        return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def viewer_headers(app):
    """Authentication headers for a user without catalog capabilities."""
    with app.app_context():
        from flask_jwt_extended import create_access_token
        access_token = create_access_token(identity="viewer-1", additional_claims={"capabilities": ["read"]})
        return {"Authorization": f"Bearer {access_token}"}
