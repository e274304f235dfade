import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from wl_app.core.rate_limit import InMemoryRateLimitStore
from wl_app.core.security import AdminAllowList, create_admin_token
from wl_app.db.base import init_db, make_engine, make_session_maker
from wl_app.main import create_app
from wl_app.storage.users import UserStorage
from wl_app.storage.waitlist import WaitlistStorage

ADMIN_EMAIL = "admin@example.com"


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'storage.db'}")
    await init_db(engine)
    try:
        yield make_session_maker(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def storage(session_maker):
    return WaitlistStorage(session_maker)


@pytest.fixture
def users(session_maker):
    return UserStorage(session_maker)


@pytest.fixture
def allow_list():
    return AdminAllowList([ADMIN_EMAIL])


@pytest.fixture
def app(tmp_path, allow_list):
    return create_app(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        rate_limit_store=InMemoryRateLimitStore(),
        admin_allow_list=allow_list,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_admin_token(ADMIN_EMAIL)}"}
