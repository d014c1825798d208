import io
from collections import namedtuple

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from campshare.api.app import create_app
from campshare.config import Settings
from campshare.db.database import Database
from campshare.geocoding.nominatim import GeocodingError
from campshare.media.storage import LocalMediaStorage

PASSWORD = "Password1"
AUSTIN = {"type": "Point", "coordinates": [-97.7431, 30.2672]}
DENVER = {"type": "Point", "coordinates": [-104.9903, 39.7392]}

# Stands in for FastAPI's UploadFile: anything with .file and .filename
UploadedFile = namedtuple("UploadedFile", ["file", "filename"])


class FakeGeocoder:
    """Answers from a fixed table; a GeocodingError value is raised instead of returned."""

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []

    def forward_geocode(self, query):
        self.calls.append(query)
        result = self.results.get(query)
        if isinstance(result, GeocodingError):
            raise result
        return result


class FlakyMedia(LocalMediaStorage):
    """Local storage whose deletes always fail, like a remote outage."""

    def __init__(self, root):
        super().__init__(root)
        self.delete_attempts = []

    def delete(self, filename):
        self.delete_attempts.append(filename)
        raise ConnectionError("media service unavailable")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        secret="test-secret",
        geocoding_enabled=False,
        media_root=str(tmp_path / "media"),
        admin_token="admin-token",
        rate_limit="10000/minute",
        auth_rate_limit="1000/minute",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.create_tables()
    yield database
    database.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def geocoder():
    return FakeGeocoder({"Austin, TX": AUSTIN, "Denver, CO": DENVER})


@pytest.fixture
def media(settings):
    return LocalMediaStorage(settings.media_root, settings.media_url)


@pytest.fixture
def app(settings, database, geocoder, media):
    return create_app(settings, database=database, geocoder=geocoder, media=media)


@pytest.fixture
def make_client(app):
    """Each client holds its own cookie jar, i.e. its own browser session."""
    def _make_client():
        return TestClient(app)
    return _make_client


@pytest.fixture
def client(make_client):
    return make_client()


def register(client, username, password=PASSWORD):
    response = client.post("/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()["user"]


def png_bytes(color="green", size=(40, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


def campground_form(**overrides):
    form = {
        "title": "Pine Ridge",
        "location": "Austin, TX",
        "price": "25",
        "description": "Tall pines and a lake view.",
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


def create_campground(client, images=0, **overrides):
    files = [("image", (f"photo{i}.png", png_bytes(), "image/png")) for i in range(images)]
    response = client.post("/campgrounds", data=campground_form(**overrides), files=files or None)
    assert response.status_code == 201, response.text
    return response.json()["campground"]
