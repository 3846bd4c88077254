import boto3
import pytest
from botocore.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from portal.database import get_db, get_engine, init_db
from portal.main import app
from portal.config import settings
from portal.models.user import User
from portal.services.media_service import media_service
from portal.services.session_service import session_service

PASSWORD = "correct-horse-battery"


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "PortalData"
    data_path.mkdir()
    return data_path


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "portal.sqlite"
    init_db(db_path)
    TestSession = sessionmaker(bind=get_engine(db_path), autoflush=False, autocommit=False)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()


@pytest.fixture
def fresh_session_service():
    """Reset session state for each test."""
    session_service.clear()
    yield session_service
    session_service.clear()


@pytest.fixture
def s3_client():
    """A real boto3 client with fake credentials: presigning never touches the network."""
    client = boto3.client(
        "s3",
        region_name="eu-west-3",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        config=Config(signature_version="s3v4"),
    )
    original = media_service._client
    media_service.use_client(client)
    yield client
    media_service.use_client(original)


@pytest.fixture
def client(tmp_data, test_db, fresh_session_service, s3_client):
    original_data_path = settings.data_path
    settings.data_path = tmp_data
    c = TestClient(app)
    yield c
    settings.data_path = original_data_path


@pytest.fixture
def make_user(client, test_db):
    """Register a user and log in; returns (user_id, auth headers)."""

    def _make(email="amina@example.com", first_name="Amina", last_name="El Idrissi", role="CANDIDATE"):
        r = client.post("/api/v1/accounts/register", json={
            "email": email,
            "password": PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
        })
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]
        if role != "CANDIDATE":
            with test_db() as db:
                db.get(User, user_id).role = role
                db.commit()
        r = client.post("/api/v1/accounts/login", json={"email": email, "password": PASSWORD})
        return user_id, {"Authorization": f"Bearer {r.json()['token']}"}

    return _make


@pytest.fixture
def candidate(make_user):
    return make_user()


@pytest.fixture
def reviewer(make_user):
    return make_user(email="jury@example.com", first_name="Jury", last_name="Member", role="REVIEWER")
