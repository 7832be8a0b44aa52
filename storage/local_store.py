"""
Local filesystem object store used when S3 is disabled.

Signed URLs point at the files route and carry a short-lived JWT bound to
the object key; without a valid token the object cannot be fetched.
"""
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from jose import JWTError, jwt

from core.logger import logger
import config

FILE_TOKEN_TYPE = "object_access"


class ObjectNotFoundError(FileNotFoundError):
    """Raised when a stored object does not exist."""


class LocalObjectStore:
    """Stores objects below a base directory, keyed like the S3 bucket."""

    def __init__(self, base_dir: Path, signing_key: str, files_url_prefix: str = "/api/focus-group/files"):
        self.base_dir = Path(base_dir)
        self.signing_key = signing_key
        self.files_url_prefix = files_url_prefix.rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local object store initialized at {self.base_dir}")

    def _path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValueError(f"Object key escapes storage root: {key}")
        return path

    def put_object(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # "xb" refuses to overwrite an existing object
        with open(path, "xb") as f:
            f.write(data)
        logger.info(f"Stored object locally: {key} ({len(data)} bytes, {content_type})")
        return key

    def get_object(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)
        return path.read_bytes()

    def delete_object(self, key: str) -> bool:
        path = self._path_for(key)
        if path.exists():
            path.unlink()
        return True

    def get_public_url(self, key: str) -> str:
        return f"{self.files_url_prefix}/{quote(key)}"

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": key,
            "type": FILE_TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
        }
        token = jwt.encode(claims, self.signing_key, algorithm=config.ALGORITHM)
        return f"{self.files_url_prefix}/{quote(key)}?token={token}"

    def verify_token(self, key: str, token: Optional[str]) -> bool:
        """True if token is an unexpired object-access token for this key."""
        if not token:
            return False
        try:
            payload = jwt.decode(token, self.signing_key, algorithms=[config.ALGORITHM])
        except JWTError:
            return False
        return payload.get("type") == FILE_TOKEN_TYPE and payload.get("sub") == key
