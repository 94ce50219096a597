from locallibrary import models
from locallibrary.endpoints import app
from locallibrary.database import Base, get_store
from locallibrary.store import RecordStore

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient


SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)
test_store = RecordStore(TestingSessionLocal)


def override_get_store():
    """
    Override for the record store dependency.

    Handlers get a store bound to the test database instead of the
    process-wide one.
    """
    return test_store


app.dependency_overrides[get_store] = override_get_store


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test and drop them afterwards.

    Every test starts with an empty catalog.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def store():
    return test_store


@pytest.fixture
def make_author(store):
    def _make(first_name="Jane", family_name="Austen", **extra):
        return store.create(
            models.Author(first_name=first_name, family_name=family_name, **extra)
        )

    return _make


@pytest.fixture
def make_genre(store):
    def _make(name="Fantasy"):
        return store.create(models.Genre(name=name))

    return _make


@pytest.fixture
def make_book(store):
    def _make(author, title="Test Book", genres=(), **extra):
        values = {"summary": "A summary", "isbn": "9780000000000"}
        values.update(extra)
        return store.create(
            models.Book(
                title=title,
                author_id=author.id,
                genre_ids=[genre.id for genre in genres],
                **values,
            )
        )

    return _make


@pytest.fixture
def make_instance(store):
    def _make(book, imprint="Test Imprint, 2020", status="Available", **extra):
        return store.create(
            models.BookInstance(
                book_id=book.id, imprint=imprint, status=status, **extra
            )
        )

    return _make
