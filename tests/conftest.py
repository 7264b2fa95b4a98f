"""
Test fixtures: an in-memory MongoDB, fake geocoder and mailer collaborators,
and factories for users, bootcamps and courses.
"""

import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

import config
from database import ensure_indexes, get_db
from geocoder import GeocodeResult, get_geocoder
from mailer import get_mailer
from main import app
from repositories import BootcampRepository, CourseRepository, UserRepository
from security import create_access_token


class FakeGeocoder:
    def __init__(self):
        self.calls = []
        self.results = [
            GeocodeResult(
                latitude=42.3505,
                longitude=-71.1054,
                street="233 Bay State Road",
                city="Boston",
                state="MA",
                zipcode="02215",
                country="US",
            )
        ]

    def geocode(self, address):
        self.calls.append(address)
        return list(self.results)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.error = None

    def send(self, email, subject, message):
        if self.error is not None:
            raise self.error
        self.sent.append({"email": email, "subject": subject, "message": message})


@pytest.fixture
def db():
    database = mongomock.MongoClient()["devcamper_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(db, geocoder, mailer, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "FILE_UPLOAD_PATH", str(tmp_path / "uploads"))
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def factory(role="user", password="123456", **fields):
        n = next(counter)
        data = {
            "name": f"{role.title()} {n}",
            "email": f"{role}{n}@devcamper.io",
            "password": password,
            "role": role,
        }
        data.update(fields)
        return UserRepository(db).create(data)

    return factory


@pytest.fixture
def auth_headers():
    def build(user):
        return {"Authorization": f"Bearer {create_access_token(str(user['_id']))}"}

    return build


@pytest.fixture
def make_bootcamp(db, geocoder):
    counter = itertools.count(1)

    def factory(owner, **fields):
        n = next(counter)
        data = {
            "name": f"Devworks Bootcamp {n}",
            "description": "Full stack web development in 12 weeks",
            "website": "https://devworks.com",
            "address": "233 Bay State Rd Boston MA 02215",
            "careers": ["Web Development", "UI/UX"],
            "user": owner["_id"],
        }
        data.update(fields)
        return BootcampRepository(db, geocoder).create(data)

    return factory


@pytest.fixture
def make_course(db):
    def factory(bootcamp, owner, tuition=10000, **fields):
        data = {
            "title": "Front End Web Development",
            "description": "HTML, CSS and JavaScript",
            "weeks": 8,
            "tuition": tuition,
            "minimum_skill": "beginner",
            "bootcamp": bootcamp["_id"],
            "user": owner["_id"],
        }
        data.update(fields)
        return CourseRepository(db).create(data)

    return factory
