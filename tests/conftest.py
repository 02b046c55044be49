"""
Test configuration and fixtures for the flat listing API.
Each test gets its own app, SQLite database file and upload directory.
"""

import io
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from listing_api.config import Settings
from listing_api.main import create_app
from listing_api.models.flat import StorageBackend
from listing_api.services.storage import ImageStorageRegistry, LocalImageStorage, StoredObject
from listing_api.utils.exceptions import StorageError
from listing_api.utils.file_utils import FileValidator, UploadedImage, safe_filename


@dataclass
class InMemoryImageStorage:
    """Bucket double keeping objects in a dict, with switchable failures."""

    bucket: str = "test-bucket"
    objects: Dict[str, bytes] = field(default_factory=dict)
    deleted: list = field(default_factory=list)
    fail_on_filename: Optional[str] = None
    fail_deletes: bool = False
    tag: str = StorageBackend.S3.value

    async def save(self, image: UploadedImage, folder: str) -> StoredObject:
        if self.fail_on_filename and image.filename == self.fail_on_filename:
            raise StorageError(f"Upload of {image.filename} failed")
        key = f"flats/{folder}/{safe_filename(image.filename)}"
        self.objects[key] = image.data
        return StoredObject(
            storage=self.tag,
            url=f"https://{self.bucket}.example.com/{key}",
            path=key,
            size=image.size,
            filename=image.filename,
            content_type=image.content_type,
            bucket=self.bucket,
        )

    async def delete(self, path: str, bucket: Optional[str] = None) -> None:
        if self.fail_deletes:
            raise StorageError(f"Delete of {path} failed")
        self.objects.pop(path, None)
        self.deleted.append(path)


def make_image_bytes(image_format: str = "PNG", color: str = "red") -> bytes:
    """Create a small test image in memory."""
    img = Image.new("RGB", (16, 16), color=color)
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=image_format)
    return img_bytes.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size=1024 * 1024,
        max_images_per_request=3,
    )


@pytest.fixture
def memory_storage() -> InMemoryImageStorage:
    return InMemoryImageStorage()


@pytest.fixture
def storage_registry(settings: Settings, memory_storage: InMemoryImageStorage) -> ImageStorageRegistry:
    """Uploads go to the in-memory bucket; local records stay deletable."""
    return ImageStorageRegistry(
        {
            StorageBackend.LOCAL.value: LocalImageStorage(settings.upload_dir, settings.uploads_url_prefix),
            StorageBackend.S3.value: memory_storage,
        },
        default=StorageBackend.S3.value,
    )


@pytest.fixture
def file_validator(settings: Settings) -> FileValidator:
    return FileValidator(settings.max_upload_size)


@pytest.fixture
async def app(settings: Settings, storage_registry: ImageStorageRegistry):
    application = create_app(settings, image_storage=storage_registry)
    await application.state.database.create_tables()
    yield application
    await application.state.database.dispose()


@pytest.fixture
async def db_session(app) -> AsyncGenerator[AsyncSession, None]:
    """Session on the app's database, for seeding and service tests."""
    async with app.state.database.session_factory() as session:
        yield session


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


# Test data factories
class UserFactory:
    """Factory for registration payloads."""

    @staticmethod
    def registration_data(
        email: Optional[str] = None,
        password: str = "secret123",
        first_name: str = "Nino",
        last_name: str = "Beridze",
        age=30,
        address: str = "12 Rustaveli Ave",
        **extra
    ) -> dict:
        return {
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "age": age,
            "address": address,
            **extra,
        }


@pytest.fixture
def user_factory() -> UserFactory:
    return UserFactory()


@pytest.fixture
def register_user(client: AsyncClient):
    """Register a user through the API and return (user json, password)."""
    async def _register(**overrides):
        data = UserFactory.registration_data(**overrides)
        response = await client.post("/api/auth/register", json=data)
        assert response.status_code == 201, response.text
        return response.json(), data["password"]

    return _register


@pytest.fixture
def login(client: AsyncClient):
    """Log in and return the token pair json."""
    async def _login(email: str, password: str) -> dict:
        response = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
async def test_user(register_user) -> dict:
    user, password = await register_user()
    user["password"] = password
    return user


@pytest.fixture
async def auth_headers(test_user: dict, login) -> dict:
    tokens = await login(test_user["email"], test_user["password"])
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def create_flat(client: AsyncClient, auth_headers: dict, png_bytes: bytes):
    """Create a flat through the multipart API."""
    async def _create(**fields):
        data = {"square": "50", "price": "1000", "street": "1 Chavchavadze Ave", **fields}
        response = await client.post(
            "/api/flats",
            data=data,
            files={"image": ("front.png", png_bytes, "image/png")},
            headers=auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
