"""Azure Blob Storage backend using the Block Blob pattern.

Block blobs have no server-side upload session: blocks are staged against
the blob name and become visible only when the block list is committed.
The session id is therefore generated here and only used for logging.
"""

import base64
import logging
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any, Dict, List

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobBlock, BlobServiceClient, ContentSettings, StandardBlobTier

from ..errors import PartUploadError, SessionError
from ..session import CompletedPart, UploadSession

logger = logging.getLogger(__name__)

# S3 storage class names are accepted too, so one STORAGE_CLASS works for both
_TIERS = {
    "HOT": StandardBlobTier.HOT,
    "STANDARD": StandardBlobTier.HOT,
    "COOL": StandardBlobTier.COOL,
    "STANDARD_IA": StandardBlobTier.COOL,
    "ONEZONE_IA": StandardBlobTier.COOL,
    "ARCHIVE": StandardBlobTier.ARCHIVE,
    "GLACIER": StandardBlobTier.ARCHIVE,
    "DEEP_ARCHIVE": StandardBlobTier.ARCHIVE,
}


def block_id(part_number: int) -> str:
    """Fixed-width block id; Azure requires equal-length ids within a blob."""
    return base64.b64encode(part_number.to_bytes(8, byteorder="big")).decode("ascii")


def _is_transient(exc: AzureError) -> bool:
    if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
        return True
    if isinstance(exc, HttpResponseError):
        return (exc.status_code or 0) >= 500
    return False


class AzureBlockBackend:
    def __init__(self, conn_str: str = "", service_client: Any = None) -> None:
        if service_client is None:
            try:
                service_client = BlobServiceClient.from_connection_string(
                    conn_str,
                    connection_timeout=30,
                    read_timeout=120,
                )
            except (ValueError, AzureError) as exc:
                raise SessionError(f"Cannot connect to Azure: {exc}") from exc
        self.service_client = service_client
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def _blob_client(self, container: str, key: str) -> Any:
        container_client = self.service_client.get_container_client(container)
        try:
            container_client.create_container()
            logger.info(f"Created container '{container}'.")
        except ResourceExistsError:
            logger.debug(f"Container '{container}' already exists.")
        return container_client.get_blob_client(key)

    def open_multipart(self, container: str, key: str, storage_class: str) -> UploadSession:
        try:
            blob_client = self._blob_client(container, key)
        except AzureError as exc:
            raise SessionError(f"Could not prepare {container}/{key}: {exc}") from exc
        session = UploadSession(session_id=uuid.uuid4().hex, container=container, key=key)
        self._sessions[session.session_id] = {
            "blob_client": blob_client,
            "tier": _TIERS.get((storage_class or "").upper()),
        }
        return session

    def _state(self, session: UploadSession) -> Dict[str, Any]:
        try:
            return self._sessions[session.session_id]
        except KeyError:
            raise SessionError(
                f"Unknown upload session {session.session_id}.", session_id=session.session_id
            ) from None

    def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> CompletedPart:
        session.ensure_open()
        blob_client = self._state(session)["blob_client"]
        tag = block_id(part_number)
        try:
            blob_client.stage_block(block_id=tag, data=data, length=len(data))
        except AzureError as exc:
            raise PartUploadError(part_number, str(exc), retryable=_is_transient(exc)) from exc
        return CompletedPart(part_number=part_number, integrity_tag=tag)

    def complete_multipart(self, session: UploadSession, parts: List[CompletedPart]) -> None:
        state = self._state(session)
        metadata = {
            "uploaded_by": "multipart_direct",
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
            "part_count": str(len(parts)),
        }
        try:
            state["blob_client"].commit_block_list(
                [BlobBlock(p.integrity_tag) for p in parts],
                metadata=metadata,
                content_settings=ContentSettings(content_type=guess_content_type(session.key)),
                standard_blob_tier=state["tier"],
            )
        except AzureError as exc:
            raise SessionError(
                f"Commit failed for {session.destination}: {exc}", session_id=session.session_id
            ) from exc
        del self._sessions[session.session_id]

    def abort_multipart(self, session: UploadSession) -> None:
        # Uncommitted blocks are garbage-collected by the service after 7 days
        self._sessions.pop(session.session_id, None)
        logger.debug(f"Dropped session {session.session_id}; staged blocks left to expire.")

    def delete_object(self, container: str, key: str) -> None:
        blob_client = self.service_client.get_blob_client(container=container, blob=key)
        try:
            blob_client.delete_blob()
        except ResourceNotFoundError:
            logger.debug(f"Nothing to delete at {container}/{key}.")
        except AzureError as exc:
            raise SessionError(f"Could not delete {container}/{key}: {exc}") from exc


def guess_content_type(name: str) -> str:
    suffix = PurePosixPath(name).suffix.lower()
    return {
        ".csv": "text/csv",
        ".json": "application/json",
        ".zip": "application/zip",
        ".gz": "application/gzip",
        ".tar": "application/x-tar",
        ".txt": "text/plain",
        ".tsv": "text/tab-separated-values",
    }.get(suffix, "application/octet-stream")
