import io
from datetime import datetime, timezone
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from docunlock.config import Settings
from docunlock.services.r2_client import R2Storage, build_r2_storage

BUCKET = "docs"
ENDPOINT = "https://acct.r2.cloudflarestorage.com"
KEY = "pdfs/blockchain-fundamentals/blockchain-fundamentals-001.pdf"


@pytest.fixture
def s3():
    client = boto3.client(
        "s3",
        endpoint_url=ENDPOINT,
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        region_name="auto",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


@pytest.fixture
def storage(s3):
    client, _ = s3
    return R2Storage(client, BUCKET, public_base="https://pub.example.dev/", endpoint_url=ENDPOINT)


def test_put_pdf_sends_content_headers():
    client = MagicMock()
    storage = R2Storage(client, BUCKET, endpoint_url=ENDPOINT)

    assert storage.put_pdf(KEY, b"%PDF", {"resourceId": "blockchain-fundamentals-001"}) == KEY

    kwargs = client.put_object.call_args.kwargs
    assert kwargs["Bucket"] == BUCKET
    assert kwargs["Body"] == b"%PDF"
    assert kwargs["ContentType"] == "application/pdf"
    assert kwargs["CacheControl"] == "public, max-age=31536000"
    assert kwargs["Metadata"]["resourceId"] == "blockchain-fundamentals-001"
    assert "uploadedAt" in kwargs["Metadata"]


def test_get_returns_body(s3, storage):
    _, stubber = s3
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(b"%PDF"), 4), "ContentLength": 4},
    )

    assert storage.get(KEY) == b"%PDF"


def test_get_missing_key(s3, storage):
    _, stubber = s3
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

    assert storage.get(KEY) is None


def test_head_returns_object_info(s3, storage):
    _, stubber = s3
    modified = datetime(2024, 5, 1, tzinfo=timezone.utc)
    stubber.add_response(
        "head_object",
        {
            "ContentLength": 2048,
            "ContentType": "application/pdf",
            "LastModified": modified,
            "Metadata": {"resourceid": "blockchain-fundamentals-001"},
        },
        {"Bucket": BUCKET, "Key": KEY},
    )

    info = storage.head(KEY)

    assert info["size"] == 2048
    assert info["last_modified"] == modified.isoformat()
    assert info["metadata"] == {"resourceid": "blockchain-fundamentals-001"}


def test_head_missing_key(s3, storage):
    _, stubber = s3
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    assert storage.head(KEY) is None


def test_head_other_errors_propagate(s3, storage):
    _, stubber = s3
    stubber.add_client_error("head_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(ClientError):
        storage.head(KEY)


def test_list_keys_follows_pages(s3, storage):
    _, stubber = s3
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "a.pdf"}], "IsTruncated": True, "NextContinuationToken": "page-2"},
        {"Bucket": BUCKET, "Prefix": ""},
    )
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "b.pdf"}], "IsTruncated": False},
        {"Bucket": BUCKET, "Prefix": "", "ContinuationToken": "page-2"},
    )

    assert storage.list_keys() == ["a.pdf", "b.pdf"]


def test_delete(s3, storage):
    _, stubber = s3
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": KEY})

    storage.delete(KEY)


def test_public_url(storage):
    assert storage.public_url(KEY) == f"https://pub.example.dev/{KEY}"

    storage.public_base = None
    assert storage.public_url(KEY) == f"{ENDPOINT}/{BUCKET}/{KEY}"


def test_build_needs_all_credentials():
    assert build_r2_storage(Settings(r2_account_id="acct", r2_bucket_name=BUCKET)) is None

    store = build_r2_storage(Settings(
        r2_account_id="acct",
        r2_access_key_id="key",
        r2_secret_access_key="secret",
        r2_bucket_name=BUCKET,
    ))
    assert store.bucket == BUCKET
    assert store.endpoint_url == ENDPOINT
