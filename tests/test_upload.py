"""
Upload tests for s3-ext.

Covers upload_from_file and upload (from any readable source) with the
buffer-to-learn-the-length policy.
"""

import errno
import io
import os

import pytest
from botocore.exceptions import EndpointConnectionError, ParamValidationError

from conftest import BUCKET, AsyncSource, ReaderWithError, get_body
from mock_s3_client import calculate_etag
from s3ext.core.errors import (
    BucketNotFoundError,
    ContractViolationError,
    ErrorCode,
    LocalIOError,
    TransportError,
)


# ============================================================================
# upload_from_file
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_from_file(s3_client, s3, tmp_path):
    """Test the object holds the file's bytes after a successful upload."""
    content = os.urandom(4096)
    source = tmp_path / "from_file"
    source.write_bytes(content)

    result = await s3.upload_from_file(source, BUCKET, "from_file")

    assert get_body(s3_client, BUCKET, "from_file") == content
    assert result.bucket == BUCKET
    assert result.key == "from_file"
    assert result.size_bytes == len(content)
    assert result.etag == calculate_etag(content)
    assert result.parts == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_is_idempotent(s3_client, s3, tmp_path):
    """Test uploading the same content twice succeeds and keeps the content."""
    source = tmp_path / "twice"
    source.write_bytes(b"same content")

    first = await s3.upload_from_file(source, BUCKET, "twice")
    second = await s3.upload_from_file(source, BUCKET, "twice")

    assert first.etag == second.etag
    assert get_body(s3_client, BUCKET, "twice") == b"same content"
    assert s3_client.count("put_object") == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_no_object_created_when_file_cannot_be_opened_for_upload(s3_client, s3):
    """Test a missing source file is a local error and no request is made."""
    with pytest.raises(LocalIOError) as exc_info:
        await s3.upload_from_file(
            "/no_such_file_or_directory_0V185rt1LhV2WwZdveEM", BUCKET, "key"
        )

    error = exc_info.value
    assert error.code == ErrorCode.IO_OPEN_FAILED
    assert error.details["errno"] == errno.ENOENT
    assert isinstance(error.__cause__, FileNotFoundError)
    assert s3_client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_from_file_passes_put_arguments(s3_client, s3, tmp_path):
    """Test extra keyword arguments reach put_object."""
    source = tmp_path / "report.csv"
    source.write_bytes(b"a,b\n1,2\n")

    await s3.upload_from_file(
        source, BUCKET, "reports/report.csv", ContentType="text/csv", Metadata={"origin": "test"}
    )

    operation, params = s3_client.calls[-1]
    assert operation == "put_object"
    assert params["ContentType"] == "text/csv"
    assert params["ContentLength"] == 8
    assert s3_client.buckets[BUCKET]["reports/report.csv"].metadata == {"origin": "test"}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_to_missing_bucket(s3, tmp_path):
    """Test the service's rejection is surfaced with its code."""
    source = tmp_path / "file"
    source.write_bytes(b"data")

    with pytest.raises(BucketNotFoundError) as exc_info:
        await s3.upload_from_file(source, "no-such-bucket", "key")

    error = exc_info.value
    assert error.code == ErrorCode.SERVICE_NO_SUCH_BUCKET
    assert error.service_code == "NoSuchBucket"
    assert error.operation == "put_object"
    assert error.request_id == "fake-request-id"


# ============================================================================
# upload from a readable source
# ============================================================================

@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload(s3_client, s3):
    """Test uploading from an in-memory buffer."""
    body = os.urandom(4096)

    result = await s3.upload(io.BytesIO(body), BUCKET, "from_read")

    assert get_body(s3_client, BUCKET, "from_read") == body
    assert result.size_bytes == len(body)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_from_async_source(s3_client, s3):
    """Test sources with coroutine read() are buffered completely."""
    body = os.urandom(5000)

    await s3.upload(AsyncSource(body), BUCKET, "async")

    assert get_body(s3_client, BUCKET, "async") == body


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_with_matching_content_length(s3_client, s3):
    """Test a declared length equal to the source size is accepted."""
    await s3.upload(io.BytesIO(b"12345"), BUCKET, "sized", content_length=5)

    assert get_body(s3_client, BUCKET, "sized") == b"12345"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_with_wrong_content_length(s3_client, s3):
    """Test a mismatching declared length is rejected before any request."""
    with pytest.raises(ContractViolationError) as exc_info:
        await s3.upload(io.BytesIO(b"12345"), BUCKET, "sized", content_length=10)

    assert exc_info.value.code == ErrorCode.CONTRACT_VIOLATION
    assert s3_client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("source", [object(), io.StringIO("text")])
async def test_upload_rejects_unusable_source(s3_client, s3, source):
    """Test non-readable and text sources are contract violations."""
    with pytest.raises(ContractViolationError):
        await s3.upload(source, BUCKET, "key")

    assert s3_client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_source_read_failure(s3_client, s3):
    """Test a failing source is a local read error."""
    with pytest.raises(LocalIOError) as exc_info:
        await s3.upload(ReaderWithError(abort_after=0), BUCKET, "key")

    assert exc_info.value.code == ErrorCode.IO_READ_FAILED
    assert exc_info.value.details["errno"] == errno.EIO
    assert s3_client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_transport_failure(s3_client, s3):
    """Test connection failures during put are transport errors."""
    s3_client.failures["put_object"] = EndpointConnectionError(
        endpoint_url="http://localhost:9000"
    )

    with pytest.raises(TransportError):
        await s3.upload(io.BytesIO(b"data"), BUCKET, "key")

    assert "key" not in s3_client.buckets[BUCKET]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_rejects_empty_key(s3_client, s3):
    """Test an empty key is rejected before reading or sending anything."""
    source = io.BytesIO(b"data")

    with pytest.raises(ContractViolationError):
        await s3.upload(source, BUCKET, "")

    assert source.tell() == 0
    assert s3_client.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_rejected_arguments_are_contract_violations(s3_client, s3):
    """Test arguments the client refuses locally are not reported as transport errors."""
    s3_client.failures["put_object"] = ParamValidationError(
        report='Unknown parameter in input: "ContentTyp"'
    )

    with pytest.raises(ContractViolationError) as exc_info:
        await s3.upload(io.BytesIO(b"data"), BUCKET, "key", ContentTyp="text/plain")

    assert exc_info.value.code == ErrorCode.CONTRACT_VIOLATION
    assert exc_info.value.details["operation"] == "put_object"
    assert isinstance(exc_info.value.__cause__, ParamValidationError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_programming_errors_propagate_unchanged(s3_client, s3):
    """Test exceptions outside the client failure types are not wrapped."""
    s3_client.failures["put_object"] = TypeError("unexpected keyword argument")

    with pytest.raises(TypeError):
        await s3.upload(io.BytesIO(b"data"), BUCKET, "key")
