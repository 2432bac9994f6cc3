"""
Shared fixtures: a fresh SQLite database and media root per test, an HTTP
client bound to the app, and operators with ready-made auth headers.

Run with: pytest tests/ -v
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="lightboard-tests-")
os.environ.setdefault("MEDIA_ROOT", os.path.join(_TMP, "media"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP}/import.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from lightboard.core.database import Base, get_db  # noqa: E402
from lightboard.core.limiter import limiter  # noqa: E402
from lightboard.core.security import Role, create_token_pair, hash_password  # noqa: E402
from lightboard.core.storage import LocalBlobStore, get_blob_store  # noqa: E402
from lightboard.main import app  # noqa: E402
from lightboard.models.company import Company  # noqa: E402
from lightboard.models.media import ContentType, MarketingMedia  # noqa: E402
from lightboard.models.operator import Operator  # noqa: E402

TEST_PASSWORD = "SecurePass1"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    store = LocalBlobStore(tmp_path / "media", "http://test/media", max_bytes=1024)
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: store
    limiter.reset()

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _make_operator(db: AsyncSession, email: str, role: Role) -> Operator:
    operator = Operator(
        email=email,
        hashed_password=_PASSWORD_HASH,
        full_name="Test Operator",
        role=role,
    )
    db.add(operator)
    await db.commit()
    await db.refresh(operator)
    return operator


@pytest_asyncio.fixture
async def editor(db_session):
    return await _make_operator(db_session, "editor@lightboard.co.za", Role.EDITOR)


@pytest_asyncio.fixture
async def admin(db_session):
    return await _make_operator(db_session, "admin@lightboard.co.za", Role.ADMIN)


@pytest_asyncio.fixture
async def company(db_session) -> Company:
    company = Company(name="Acme", details="Widgets")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture
async def video(db_session, company) -> MarketingMedia:
    media = MarketingMedia(
        company_id=company.id,
        content_type=ContentType.VIDEO,
        video_url="https://youtu.be/dQw4w9WgXcQ",
        description="Promo A",
        approved=True,
    )
    db_session.add(media)
    await db_session.commit()
    await db_session.refresh(media)
    return media


def auth_headers(operator: Operator) -> dict:
    tokens = create_token_pair(operator.id, operator.role)
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
def editor_headers(editor) -> dict:
    return auth_headers(editor)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)
