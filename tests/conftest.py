"""
Pytest configuration and shared fixtures.
"""

import itertools

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from api.auth import SigningKey, TokenService
from store.books import CatalogStore
from store.database import MongoDBManager
from store.models import Author, Book, User
from store.users import CredentialStore


@pytest_asyncio.fixture
async def db_manager():
    """In-memory MongoDB with the production indexes."""
    manager = MongoDBManager.from_client(AsyncMongoMockClient(), "book_manager_test")
    await manager.create_schema()
    return manager


@pytest.fixture
def credential_store(db_manager):
    return CredentialStore(db_manager, bcrypt_rounds=4)


@pytest.fixture
def catalog_store(db_manager, credential_store):
    return CatalogStore(db_manager, credential_store)


@pytest.fixture
def token_service(credential_store):
    return TokenService(SigningKey.generate(), credential_store, ttl_minutes=10)


@pytest.fixture
def make_user():
    """Build signup candidates with distinct unique fields."""
    phones = itertools.count(1)

    def _make(username="alice", email=None, phone_number=None, password="s3cret"):
        return User(
            username=username,
            email=email or f"{username}@x.com",
            phone_number=phone_number or f"{next(phones):011d}",
            password=password,
            first_name=username.title(),
            last_name="Tester",
            gender="other",
        )

    return _make


@pytest.fixture
def sample_book():
    """Book fields as a client would send them, without owner or ids."""
    return Book(
        name="The Go Programming Language",
        category="Programming",
        volume=1,
        summary="An introduction",
        publisher="Addison-Wesley",
        author=Author(first_name="Alan", last_name="Donovan", nationality="American"),
    )
