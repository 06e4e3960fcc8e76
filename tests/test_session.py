"""Tests for the finalize step."""
import pytest

from multipart_direct.errors import IncompleteUploadError, SessionError
from multipart_direct.session import ABORTED, COMPLETED, CompletedPart, abort, finalize
from tests.mocks.fake_backend import FakeBackend


def _upload(backend: FakeBackend, numbers):
    session = backend.open_multipart("bucket", "key", "STANDARD")
    parts = [backend.upload_part(session, n, b"x%d" % n) for n in numbers]
    return session, parts


def test_finalize_missing_part(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1, 3])
    with pytest.raises(IncompleteUploadError) as excinfo:
        finalize(backend, session, parts, part_count=3)
    assert excinfo.value.missing == [2]
    assert "complete_multipart" not in backend.call_names()
    assert session.is_open


def test_finalize_full_set_once(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1, 2, 3])
    finalize(backend, session, list(reversed(parts)), part_count=3)

    assert session.state == COMPLETED
    assert ("complete_multipart", [1, 2, 3]) in backend.calls
    assert backend.objects["bucket/key"] == b"x1x2x3"

    with pytest.raises(SessionError):
        finalize(backend, session, parts, part_count=3)
    assert backend.call_names().count("complete_multipart") == 1


def test_finalize_rejects_duplicates(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1, 2])
    parts.append(CompletedPart(part_number=2, integrity_tag="other"))
    with pytest.raises(IncompleteUploadError) as excinfo:
        finalize(backend, session, parts, part_count=2)
    assert excinfo.value.duplicated == [2]


def test_finalize_rejects_out_of_range(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1, 2, 3])
    with pytest.raises(IncompleteUploadError) as excinfo:
        finalize(backend, session, parts, part_count=2)
    assert excinfo.value.unexpected == [3]


def test_failed_complete_leaves_session_open(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1])
    backend.fail_complete = SessionError("boom", session_id=session.session_id)
    with pytest.raises(SessionError):
        finalize(backend, session, parts, part_count=1)
    assert session.is_open


def test_aborted_session_cannot_be_used(backend: FakeBackend) -> None:
    session, parts = _upload(backend, [1])
    abort(backend, session)
    assert session.state == ABORTED

    with pytest.raises(SessionError):
        finalize(backend, session, parts, part_count=1)
    with pytest.raises(SessionError):
        backend.upload_part(session, 2, b"late")
    with pytest.raises(SessionError):
        abort(backend, session)
