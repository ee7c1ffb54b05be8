"""Tests for cover image object storage backends."""

import boto3
import pytest
from botocore.stub import Stubber

from services.pipeline.app.config import PipelineSettings
from services.pipeline.app.errors import StorageFailureError
from services.pipeline.app.store.objects import (
    LocalObjectStore,
    S3ObjectStore,
    build_object_store,
    object_key,
)


def _s3_client():
    return boto3.client(
        "s3",
        region_name="eu-west-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


def test_object_key_layout() -> None:
    assert object_key("user", "project", "cover_1.png") == "user/project/cover_1.png"


def test_local_store_writes_and_returns_url(tmp_path) -> None:
    store = LocalObjectStore(tmp_path, "http://localhost:8000/assets/")

    url = store.put("u/p/cover_1.png", b"png-bytes", "image/png")

    assert url == "http://localhost:8000/assets/u/p/cover_1.png"
    assert (tmp_path / "u/p/cover_1.png").read_bytes() == b"png-bytes"


def test_local_store_refuses_overwrite(tmp_path) -> None:
    store = LocalObjectStore(tmp_path, "http://assets.test")
    store.put("u/p/cover_1.png", b"first", "image/png")

    with pytest.raises(StorageFailureError):
        store.put("u/p/cover_1.png", b"second", "image/png")
    assert (tmp_path / "u/p/cover_1.png").read_bytes() == b"first"


def test_s3_store_uploads_with_content_type() -> None:
    client = _s3_client()
    store = S3ObjectStore("covers", "eu-west-1", client=client)
    with Stubber(client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "covers",
                "Key": "u/p/cover_1.png",
                "Body": b"png-bytes",
                "ContentType": "image/png",
            },
        )
        url = store.put("u/p/cover_1.png", b"png-bytes", "image/png")
        stubber.assert_no_pending_responses()

    assert url == "https://covers.s3.eu-west-1.amazonaws.com/u/p/cover_1.png"


def test_s3_client_error_becomes_storage_failure() -> None:
    client = _s3_client()
    store = S3ObjectStore("covers", "eu-west-1", client=client)
    with Stubber(client) as stubber:
        stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageFailureError) as excinfo:
            store.put("u/p/cover_1.png", b"png-bytes", "image/png")

    assert excinfo.value.status_code == 500


def test_build_object_store_requires_bucket_for_s3(tmp_path) -> None:
    assert isinstance(
        build_object_store(PipelineSettings(storage_root=str(tmp_path))), LocalObjectStore
    )
    with pytest.raises(RuntimeError):
        build_object_store(PipelineSettings(object_store="s3"))
