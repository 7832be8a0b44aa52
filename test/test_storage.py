"""
Tests for object keys and object stores.
"""
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from storage.local_store import LocalObjectStore, ObjectNotFoundError
from storage.paths import upload_object_key, profile_prefix
from storage.presigned import get_signed_url
from storage.s3_client import S3ObjectStore


class TestUploadKeys:
    def test_key_layout(self):
        key = upload_object_key("p-1", 4, timestamp_ms=1718000000000)
        assert key.startswith("p-1/week-4-1718000000000-")
        assert key.endswith(".jpg")

    def test_same_millisecond_keys_differ(self):
        keys = {upload_object_key("p-1", 4, timestamp_ms=1) for _ in range(50)}
        assert len(keys) == 50

    def test_extension_normalized(self):
        assert upload_object_key("p-1", 1, extension="png").endswith(".png")

    def test_profile_prefix(self):
        assert profile_prefix("abc") == "abc/"


class TestLocalObjectStore:
    def test_put_and_get(self, store):
        store.put_object("p-1/week-1-1-aa.jpg", b"data", "image/jpeg")
        assert store.get_object("p-1/week-1-1-aa.jpg") == b"data"

    def test_never_overwrites(self, store):
        store.put_object("p-1/a.jpg", b"first")
        with pytest.raises(FileExistsError):
            store.put_object("p-1/a.jpg", b"second")
        assert store.get_object("p-1/a.jpg") == b"first"

    def test_missing_object(self, store):
        with pytest.raises(ObjectNotFoundError):
            store.get_object("p-1/missing.jpg")

    def test_rejects_path_traversal(self, store):
        with pytest.raises(ValueError):
            store.put_object("../escape.jpg", b"x")

    def test_delete(self, store):
        store.put_object("p-1/b.jpg", b"x")
        store.delete_object("p-1/b.jpg")
        with pytest.raises(ObjectNotFoundError):
            store.get_object("p-1/b.jpg")

    def test_public_url_has_no_token(self, store):
        assert store.get_public_url("p-1/c.jpg") == "/api/focus-group/files/p-1/c.jpg"

    def test_presigned_url_verifies(self, store):
        url = store.get_presigned_url("p-1/c.jpg", expires_in=60)
        token = url.split("token=", 1)[1]
        assert store.verify_token("p-1/c.jpg", token)
        assert not store.verify_token("p-1/d.jpg", token)
        assert not store.verify_token("p-1/c.jpg", None)

    def test_other_signing_key_rejected(self, store, tmp_path):
        other = LocalObjectStore(tmp_path / "other", signing_key="different")
        token = other.get_presigned_url("p-1/c.jpg").split("token=", 1)[1]
        assert not store.verify_token("p-1/c.jpg", token)


class TestS3ObjectStore:
    def _store(self, client=None, **kwargs):
        return S3ObjectStore("focus-group-uploads", client=client or MagicMock(), **kwargs)

    def test_put_object(self):
        client = MagicMock()
        store = self._store(client)
        assert store.put_object("p-1/a.jpg", b"x", "image/jpeg") == "p-1/a.jpg"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "focus-group-uploads"
        assert kwargs["Key"] == "p-1/a.jpg"
        assert kwargs["ContentType"] == "image/jpeg"

    def test_presigned_url(self):
        client = MagicMock()
        client.generate_presigned_url.return_value = "https://signed.example/a"
        store = self._store(client)
        assert store.get_presigned_url("p-1/a.jpg", expires_in=3600) == "https://signed.example/a"
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "focus-group-uploads", "Key": "p-1/a.jpg"}, ExpiresIn=3600
        )

    def test_public_url(self):
        store = self._store(region_name="eu-west-1")
        assert store.get_public_url("p-1/a.jpg") == "https://focus-group-uploads.s3.eu-west-1.amazonaws.com/p-1/a.jpg"

    def test_public_url_custom_endpoint(self):
        store = self._store(endpoint_url="http://minio:9000/")
        assert store.get_public_url("p-1/a.jpg") == "http://minio:9000/focus-group-uploads/p-1/a.jpg"

    def test_creates_missing_bucket(self):
        client = MagicMock()
        client.head_bucket.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadBucket")
        self._store(client)
        client.create_bucket.assert_called_once_with(Bucket="focus-group-uploads")

    def test_missing_bucket_without_auto_create(self):
        client = MagicMock()
        client.head_bucket.side_effect = ClientError({"Error": {"Code": "404"}}, "HeadBucket")
        with pytest.raises(ClientError):
            self._store(client, auto_create_bucket=False)


class TestSignedUrlHelper:
    def test_empty_key(self, store):
        assert get_signed_url(store, "") == (None, False)

    def test_signs_key(self, store):
        url, signed = get_signed_url(store, "p-1/a.jpg")
        assert signed is True
        assert "token=" in url

    def test_failure_returns_key(self):
        broken = MagicMock()
        broken.get_presigned_url.side_effect = RuntimeError("down")
        assert get_signed_url(broken, "p-1/a.jpg") == ("p-1/a.jpg", False)
