"""Tests for the Azure Block Blob backend."""
from unittest import mock

import pytest
from azure.core.exceptions import (
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.storage.blob import StandardBlobTier

from multipart_direct.backends.azure import AzureBlockBackend, block_id, guess_content_type
from multipart_direct.errors import PartUploadError, SessionError
from multipart_direct.session import finalize


@pytest.fixture
def service_client() -> mock.MagicMock:
    return mock.MagicMock()


@pytest.fixture
def blob_client(service_client: mock.MagicMock) -> mock.MagicMock:
    container = service_client.get_container_client.return_value
    return container.get_blob_client.return_value


@pytest.fixture
def backend(service_client: mock.MagicMock) -> AzureBlockBackend:
    return AzureBlockBackend(service_client=service_client)


def test_block_ids_have_fixed_width() -> None:
    assert len({len(block_id(n)) for n in (1, 10, 10_000)}) == 1
    assert block_id(1) != block_id(2)


def test_open_creates_container(backend, service_client, blob_client) -> None:
    session = backend.open_multipart("uploads", "big.csv", "DEEP_ARCHIVE")

    service_client.get_container_client.assert_called_once_with("uploads")
    service_client.get_container_client.return_value.create_container.assert_called_once_with()
    assert session.container == "uploads"
    assert session.key == "big.csv"
    assert session.session_id


def test_open_tolerates_existing_container(backend, service_client) -> None:
    container = service_client.get_container_client.return_value
    container.create_container.side_effect = ResourceExistsError("exists")
    session = backend.open_multipart("uploads", "big.csv", "")
    assert session.is_open


def test_upload_and_commit(backend, blob_client) -> None:
    session = backend.open_multipart("uploads", "big.csv", "DEEP_ARCHIVE")
    parts = [backend.upload_part(session, n, b"chunk%d" % n) for n in (1, 2)]

    assert [p.integrity_tag for p in parts] == [block_id(1), block_id(2)]
    blob_client.stage_block.assert_any_call(block_id=block_id(2), data=b"chunk2", length=6)

    finalize(backend, session, parts, part_count=2)

    args, kwargs = blob_client.commit_block_list.call_args
    assert [b.id for b in args[0]] == [block_id(1), block_id(2)]
    assert kwargs["standard_blob_tier"] == StandardBlobTier.ARCHIVE
    assert kwargs["content_settings"].content_type == "text/csv"
    assert kwargs["metadata"]["part_count"] == "2"


def test_transient_stage_error_is_retryable(backend, blob_client) -> None:
    session = backend.open_multipart("uploads", "big.csv", "")
    blob_client.stage_block.side_effect = ServiceRequestError("connection reset")
    with pytest.raises(PartUploadError) as excinfo:
        backend.upload_part(session, 1, b"x")
    assert excinfo.value.retryable


def test_server_error_retryable_client_error_not(backend, blob_client) -> None:
    session = backend.open_multipart("uploads", "big.csv", "")

    server_error = HttpResponseError(message="busy")
    server_error.status_code = 503
    blob_client.stage_block.side_effect = server_error
    with pytest.raises(PartUploadError) as excinfo:
        backend.upload_part(session, 1, b"x")
    assert excinfo.value.retryable

    client_error = HttpResponseError(message="bad block")
    client_error.status_code = 400
    blob_client.stage_block.side_effect = client_error
    with pytest.raises(PartUploadError) as excinfo:
        backend.upload_part(session, 1, b"x")
    assert not excinfo.value.retryable


def test_commit_failure_is_session_error(backend, blob_client) -> None:
    session = backend.open_multipart("uploads", "big.csv", "")
    parts = [backend.upload_part(session, 1, b"x")]
    blob_client.commit_block_list.side_effect = HttpResponseError(message="InvalidBlockList")
    with pytest.raises(SessionError):
        finalize(backend, session, parts, part_count=1)


def test_delete_missing_blob_is_not_an_error(backend, service_client) -> None:
    target = service_client.get_blob_client.return_value
    target.delete_blob.side_effect = ResourceNotFoundError("gone")
    backend.delete_object("uploads", "big.csv")
    service_client.get_blob_client.assert_called_once_with(container="uploads", blob="big.csv")


def test_abort_forgets_session(backend) -> None:
    session = backend.open_multipart("uploads", "big.csv", "")
    backend.abort_multipart(session)
    with pytest.raises(SessionError):
        backend.upload_part(session, 1, b"x")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a.json", "application/json"),
        ("dir/b.TXT", "text/plain"),
        ("noext", "application/octet-stream"),
        ("dir.v2/file", "application/octet-stream"),
        ("dir.v2/data.csv", "text/csv"),
    ],
)
def test_guess_content_type(name: str, expected: str) -> None:
    assert guess_content_type(name) == expected
