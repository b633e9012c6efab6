import io
import shutil

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from api.filerecord.paths import PathBuilder
from core.deps import get_storage_registry, get_url_builder
from core.storage import LocalStorage, StorageBackend, StorageRegistry
from core.exceptions import StorageObjectNotFoundError
from main import app


def make_image_bytes(width: int = 400, height: int = 300, fmt: str = "JPEG") -> bytes:
    """Gradient test image, deterministic for a given size and format"""
    image = Image.new("RGB", (width, height))
    pixels = image.load()
    for x in range(width):
        for y in range(height):
            pixels[x, y] = (x * 255 // width, y * 255 // height, 128)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class MockStorage(StorageBackend):
    """In-memory storage backend that records every write"""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.writes: list[tuple[str, bytes]] = []
        self.reads: list[str] = []
        self.fail_writes_for: set[str] = set()

    def read_stream(self, path: str):
        self.reads.append(path)
        if path not in self.objects:
            raise StorageObjectNotFoundError(path)
        return io.BytesIO(self.objects[path])

    def write_stream(self, path: str, stream, config: dict | None = None) -> None:
        if path in self.fail_writes_for:
            raise OSError(f"Simulated write failure for {path}")
        data = stream.read()
        self.objects[path] = data
        self.writes.append((path, data))

    def delete(self, path: str) -> None:
        self.objects.pop(path, None)

    def exists(self, path: str) -> bool:
        return path in self.objects

    def size(self, path: str) -> int:
        if path not in self.objects:
            raise StorageObjectNotFoundError(path)
        return len(self.objects[path])


class MockS3Body(io.BytesIO):
    """Stand-in for botocore's StreamingBody"""


class MockS3Client:
    """Mock S3 client for testing"""

    def __init__(self):
        self.buckets = {}  # Store object data: {bucket_name: {key: bytes}}
        self.uploads = []  # (bucket, key, ExtraArgs) per upload_fileobj call
        self.error_mode = None  # For simulating errors

    def setup_object(self, bucket: str, key: str, data: bytes):
        self.buckets.setdefault(bucket, {})[key] = data

    def _check_error(self, operation: str):
        if self.error_mode is None:
            return
        from botocore.exceptions import ClientError

        messages = {
            "NoSuchBucket": "The specified bucket does not exist",
            "AccessDenied": "Access Denied",
        }
        raise ClientError(
            {"Error": {"Code": self.error_mode, "Message": messages.get(self.error_mode, "")}},
            operation,
        )

    def _missing(self, operation: str, code: str = "NoSuchKey"):
        from botocore.exceptions import ClientError

        return ClientError(
            {"Error": {"Code": code, "Message": "The specified key does not exist."}},
            operation,
        )

    def get_object(self, Bucket: str, Key: str):
        self._check_error("GetObject")
        try:
            data = self.buckets[Bucket][Key]
        except KeyError:
            raise self._missing("GetObject") from None
        return {"Body": MockS3Body(data), "ContentLength": len(data)}

    def head_object(self, Bucket: str, Key: str):
        self._check_error("HeadObject")
        try:
            data = self.buckets[Bucket][Key]
        except KeyError:
            raise self._missing("HeadObject", code="404") from None
        return {"ContentLength": len(data)}

    def upload_fileobj(self, Fileobj, Bucket: str, Key: str, ExtraArgs=None):
        self._check_error("PutObject")
        self.buckets.setdefault(Bucket, {})[Key] = Fileobj.read()
        self.uploads.append((Bucket, Key, ExtraArgs))

    def delete_object(self, Bucket: str, Key: str):
        self._check_error("DeleteObject")
        self.buckets.get(Bucket, {}).pop(Key, None)
        return {}

    def simulate_error(self, error_type: str):
        """
        Configure client to raise specific errors

        Args:
            error_type: One of "NoSuchBucket", "AccessDenied"
        """
        self.error_mode = error_type


class RecordingOptimizer:
    """Optimizer double that copies input to output and remembers the paths"""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def optimize(self, input_path: str, output_path: str) -> None:
        self.calls.append((input_path, output_path))
        shutil.copyfile(input_path, output_path)


@pytest.fixture(name="jpeg_bytes")
def jpeg_bytes_fixture() -> bytes:
    return make_image_bytes()


@pytest.fixture(name="png_bytes")
def png_bytes_fixture() -> bytes:
    return make_image_bytes(fmt="PNG")


@pytest.fixture(name="jpeg_file")
def jpeg_file_fixture(tmp_path, jpeg_bytes):
    """JPEG image on the local disk"""
    path = tmp_path / "titus.jpg"
    path.write_bytes(jpeg_bytes)
    return path


@pytest.fixture(name="mock_storage")
def mock_storage_fixture() -> MockStorage:
    return MockStorage()


@pytest.fixture(name="local_storage")
def local_storage_fixture(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


@pytest.fixture(name="mock_s3_client")
def mock_s3_client_fixture():
    """Provide a mock S3 client for testing"""
    return MockS3Client()


@pytest.fixture(name="registry")
def registry_fixture(mock_storage, local_storage) -> StorageRegistry:
    return StorageRegistry({"memory": mock_storage, "local": local_storage})


@pytest.fixture(name="path_builder")
def path_builder_fixture() -> PathBuilder:
    return PathBuilder()


@pytest.fixture(name="optimizer")
def optimizer_fixture() -> RecordingOptimizer:
    return RecordingOptimizer()


@pytest.fixture(name="client")
def client_fixture(registry: StorageRegistry):
    def get_storage_registry_override():
        return registry

    def get_url_builder_override():
        return None

    app.dependency_overrides[get_storage_registry] = get_storage_registry_override
    app.dependency_overrides[get_url_builder] = get_url_builder_override

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
