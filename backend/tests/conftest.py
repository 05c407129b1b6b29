"""
Test configuration and fixtures.
Uses an in-memory SQLite database (aiosqlite) shared through a StaticPool.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("AUTOMATION_WEBHOOK_URL", None)

import asyncio
import pytest
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.ai.base import CaptionRequest, CaptionResult, VisionCaptionProvider
from app.auth.dependencies import CurrentUser
from app.exceptions import VisionAPIError
from app.models.base import Base
from app.models.requirement import Requirement, RequirementPriority
from app.models.dataset import Dataset
from app.models.media_asset import MediaAsset, MediaStatus
from app.storage.signer import StorageConfig, StorageSigner


TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeCaptionProvider(VisionCaptionProvider):
    """
    In-process caption provider.

    Captions are "caption for <image_url>" unless the URL is listed in
    `failures`, in which case VisionAPIError is raised with that message.
    Tracks how many calls are in flight at once.
    """

    name = "fake"

    def __init__(self, failures: Optional[Dict[str, str]] = None, delays: Optional[Dict[str, float]] = None):
        self.failures = failures or {}
        self.delays = delays or {}
        self.requests: List[CaptionRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def is_configured(self) -> bool:
        return True

    async def generate_caption(self, request: CaptionRequest) -> CaptionResult:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(request.image_url, 0.01))
            if request.image_url in self.failures:
                raise VisionAPIError(self.failures[request.image_url], status_code=500)
            return CaptionResult(
                caption=f"caption for {request.image_url}",
                model="gpt-4o-2024-08-06",
                tokens_used=42,
                confidence=90,
            )
        finally:
            self.in_flight -= 1


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database and session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="test-secret",
        bucket="ct-assets",
        region="us-east-1",
        endpoint="https://s3.us-east-1.amazonaws.com",
    )


@pytest.fixture
def signer(storage_config: StorageConfig) -> StorageSigner:
    return StorageSigner(storage_config)


@pytest.fixture
def fake_provider() -> FakeCaptionProvider:
    return FakeCaptionProvider()


@pytest.fixture
def test_user() -> CurrentUser:
    return CurrentUser(uid="reviewer-uid", email="reviewer@example.com")


@pytest.fixture(scope="function")
async def test_requirement(db_session: AsyncSession) -> Requirement:
    """Create a test requirement."""
    requirement = Requirement(
        title="Spring catalogue",
        description="Lifestyle shots for the spring catalogue",
        owner="ops@example.com",
        team="Creative Ops",
        priority=RequirementPriority.HIGH,
    )
    db_session.add(requirement)
    await db_session.commit()
    await db_session.refresh(requirement)
    return requirement


@pytest.fixture(scope="function")
async def test_dataset(db_session: AsyncSession, test_requirement: Requirement) -> Dataset:
    """Create a test dataset."""
    dataset = Dataset(
        requirement_id=test_requirement.id,
        name="spring-lifestyle",
        storage_bucket="ct-assets",
    )
    db_session.add(dataset)
    await db_session.commit()
    await db_session.refresh(dataset)
    return dataset


async def create_asset(
    db: AsyncSession,
    dataset: Dataset,
    original_name: str,
    status: MediaStatus = MediaStatus.UPLOADED,
) -> MediaAsset:
    asset = MediaAsset(
        dataset_id=dataset.id,
        requirement_id=dataset.requirement_id,
        original_name=original_name,
        mime_type="image/jpeg",
        size=1024,
        storage_bucket=dataset.storage_bucket,
        storage_key=f"datasets/{dataset.id}/1700000000000-{original_name}",
        public_url=f"https://cdn.example.com/{original_name}",
        status=status,
    )
    db.add(asset)
    await db.commit()
    await db.refresh(asset)
    return asset


@pytest.fixture(scope="function")
async def test_assets(db_session: AsyncSession, test_dataset: Dataset) -> List[MediaAsset]:
    """Three uploaded assets without captions."""
    return [
        await create_asset(db_session, test_dataset, name)
        for name in ("cat.jpg", "dog.png", "bird.webp")
    ]


def get_test_app(
    db_session: AsyncSession,
    user: CurrentUser,
    signer: StorageSigner,
    provider: VisionCaptionProvider,
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from app.main import app
    from app.database import get_db
    from app.auth.dependencies import get_current_user
    from app.storage.signer import get_storage_signer
    from app.ai.factory import get_caption_provider

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_storage_signer] = lambda: signer
    app.dependency_overrides[get_caption_provider] = lambda: provider

    return app


@pytest.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    test_user: CurrentUser,
    signer: StorageSigner,
    fake_provider: FakeCaptionProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(db_session, test_user, signer, fake_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
