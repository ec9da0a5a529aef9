import pytest
from fastapi.testclient import TestClient

from bucket.config import BucketSettings
from bucket.main import create_app

CONTENT_TYPES = [
    (r"\.csv$", "text/csv"),
    (r"\.txt$", "text/plain"),
    (r"\.html?$", "text/html"),
]


@pytest.fixture
def web_root(tmp_path):
    path = tmp_path / "wwwroot"
    path.mkdir()
    return path


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "temp"
    path.mkdir()
    return path


@pytest.fixture
def make_client(web_root, temp_dir):
    """Build a TestClient around an app configured with the given settings."""
    clients = []

    def _make_client(**settings):
        settings.setdefault("content_types", CONTENT_TYPES)
        app = create_app(BucketSettings(**settings), web_root=web_root, temp_dir=temp_dir)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make_client

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
