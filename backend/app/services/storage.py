# app/services/storage.py
"""
Byte-level storage layer with local and cloud backends.
Set STORAGE_BACKEND env var to 'local' or 's3' to switch.
"""
import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Optional

from botocore.exceptions import ClientError

from app import config
from app.util.logging import logger


class StorageBackend:
    """Abstract storage interface"""

    def write_file(self, path: str, content: bytes) -> str:
        """Write file as a whole, return public URL or local path"""
        raise NotImplementedError

    def write_text(self, path: str, content: str) -> str:
        """Write text file"""
        return self.write_file(path, content.encode('utf-8'))

    def write_json(self, path: str, data: Any) -> str:
        """Write JSON document"""
        content = json.dumps(data, ensure_ascii=False, indent=2)
        return self.write_text(path, content)

    def read_file(self, path: str) -> bytes:
        """Read file content"""
        raise NotImplementedError

    def read_text(self, path: str) -> str:
        """Read text file"""
        return self.read_file(path).decode('utf-8')

    def read_json(self, path: str) -> Any:
        """Read JSON document"""
        return json.loads(self.read_text(path) or "null")

    def exists(self, path: str) -> bool:
        """Check if file exists"""
        raise NotImplementedError


class LocalStorage(StorageBackend):
    """Local filesystem storage. Writes land atomically via a temp file + rename.
    Replacing a file keeps its permission bits; new files get NEW_FILE_MODE.
    """

    NEW_FILE_MODE = 0o644

    def __init__(self, base_dir: str = "data"):
        self.base_dir = Path(base_dir)

    def _full_path(self, path: str) -> Path:
        return self.base_dir / path

    def write_file(self, path: str, content: bytes) -> str:
        full_path = self._full_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=f".{full_path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, self._target_mode(full_path))
            os.replace(tmp_name, full_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return str(full_path)

    def _target_mode(self, full_path: Path) -> int:
        try:
            return stat.S_IMODE(os.stat(full_path).st_mode)
        except FileNotFoundError:
            return self.NEW_FILE_MODE

    def read_file(self, path: str) -> bytes:
        full_path = self._full_path(path)
        with open(full_path, 'rb') as f:
            return f.read()

    def exists(self, path: str) -> bool:
        return self._full_path(path).exists()


class S3Storage(StorageBackend):
    """AWS S3 storage backend. Each put replaces the whole object."""

    def __init__(self, bucket: str, region: str = "ap-southeast-1", client=None):
        self.bucket = bucket
        self.region = region
        self._client = client

    @property
    def client(self):
        """Lazy load boto3 client"""
        if self._client is None:
            import boto3
            self._client = boto3.client('s3', region_name=self.region)
        return self._client

    def _s3_key(self, path: str) -> str:
        """Convert path to S3 key"""
        return path.replace('\\', '/')

    def write_file(self, path: str, content: bytes) -> str:
        key = self._s3_key(path)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=content
        )
        return f"s3://{self.bucket}/{key}"

    def read_file(self, path: str) -> bytes:
        key = self._s3_key(path)
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        return response['Body'].read()

    def exists(self, path: str) -> bool:
        key = self._s3_key(path)
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise


def build_storage(backend: Optional[str] = None) -> StorageBackend:
    """Create a storage backend from config (or an explicit backend name)."""
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "s3":
        logger.info(f"Storage: S3 bucket={config.S3_BUCKET}")
        return S3Storage(bucket=config.S3_BUCKET, region=config.AWS_REGION)
    if backend != "local":
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
    logger.info(f"Storage: local filesystem at {config.DATA_DIR}")
    return LocalStorage(base_dir=config.DATA_DIR)

