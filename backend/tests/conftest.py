import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from sensafe.config import Settings
from sensafe.main import create_app

PARENT = {
    "email": "parent@x.com",
    "password": "secret1",
    "role": "PARENT",
    "firstName": "Paula",
    "lastName": "Parent",
    "phoneNumber": "+55 11 99999-0000",
}

PATIENT = {
    "email": "patient@x.com",
    "password": "secret2",
    "role": "PATIENT",
    "firstName": "Pedro",
    "lastName": "Patient",
    "parentEmail": "parent@x.com",
    "serialNumber": "SN1",
    "deviceName": "Wristband",
    "latitude": 10,
    "longitude": 20,
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret-123",
        log_level="WARNING",
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    await app.state.database.create_all()
    yield app
    await app.state.database.dispose()


@pytest.fixture
async def client(app):
    """Async HTTP client using httpx with ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def count_rows(app):
    """Count rows with a fresh session so the check never sees a stale identity map."""

    async def _count(model, *criteria) -> int:
        async with app.state.database.sessionmaker() as session:
            q = select(func.count()).select_from(model)
            if criteria:
                q = q.where(*criteria)
            return (await session.execute(q)).scalar_one()

    return _count


@pytest.fixture
def db_session(app):
    """Open a short-lived session: `async with db_session() as s: ...`."""
    return app.state.database.sessionmaker


@pytest.fixture
async def parent(client):
    resp = await client.post("/auth/register", json=PARENT)
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


@pytest.fixture
async def patient(client, parent):
    resp = await client.post("/auth/register", json=PATIENT)
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]
