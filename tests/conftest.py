import os

# must be set before the service modules are imported
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["DB_AUTO_CREATE"] = "false"
os.environ.pop("RABBIT_URL", None)
os.environ.pop("GEMINI_API_KEY", None)

import asyncio

import httpx
import pytest
import pytest_asyncio
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from negotiation_service.db import create_tables, get_db
from negotiation_service.errors import EstimatorUnavailable
from negotiation_service.estimator import Estimate, get_estimator
from negotiation_service.main import app
from negotiation_service.models import Role, Technician, User


class FakeEstimator:
    def __init__(self, result: Estimate | None = None, error: Exception | None = None, delay: float = 0):
        self.result = result or Estimate("₹1,200 - ₹1,400", "Gas refill and labour.", "Clean the filters first.")
        self.error = error
        self.delay = delay
        self.calls = []

    async def estimate(self, service_type: str, description: str, district: str) -> Estimate:
        self.calls.append((service_type, description, district))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def estimator():
    return FakeEstimator()


@pytest.fixture
def failing_estimator():
    return FakeEstimator(error=EstimatorUnavailable("boom"))


async def add_technician(
    db: AsyncSession,
    service: str = "AC Repair",
    base_charge: int | None = 1200,
    district: str = "Patna",
    verified: bool = True,
    name: str = "Rohit Kumar",
) -> Technician:
    user = User(name=name, email=f"{name.lower().replace(' ', '.')}.{service.lower().replace(' ', '')}@fixmate.com",
                role=Role.TECHNICIAN.value, phone="9876512345", location=district)
    db.add(user)
    await db.flush()

    technician = Technician(
        user_id=user.id,
        skills=service,
        experience=4,
        district=district,
        is_verified=verified,
        base_charge=base_charge,
        bio=f"Expert {service} serving {district}.",
    )
    db.add(technician)
    await db.commit()
    return technician


@pytest.fixture
def make_technician(db_session):
    async def _make(**kwargs) -> Technician:
        return await add_technician(db_session, **kwargs)
    return _make


def token_for(user_id: int, *roles: str) -> str:
    return jwt.encode({"sub": str(user_id), "roles": list(roles)}, os.environ["JWT_SECRET"], algorithm="HS256")


def auth(user_id: int, *roles: str) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id, *roles)}"}


@pytest_asyncio.fixture
async def client(session_factory, estimator):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_estimator] = lambda: estimator

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
