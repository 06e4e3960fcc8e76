"""Amazon S3 (and S3-compatible) multipart backend."""

import logging
from typing import Any, List, Optional

import boto3
import botocore.exceptions

from ..errors import PartUploadError, SessionError
from ..session import CompletedPart, UploadSession

logger = logging.getLogger(__name__)

# Error codes S3 returns for throttling and server-side hiccups
_TRANSIENT_CODES = {
    "InternalError",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "ServiceUnavailable",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
}


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, (botocore.exceptions.ConnectionError, botocore.exceptions.HTTPClientError)):
        return True
    if isinstance(exc, botocore.exceptions.ClientError):
        error = exc.response.get("Error", {})
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        return error.get("Code") in _TRANSIENT_CODES or status >= 500
    return False


def _describe(exc: Exception) -> str:
    if isinstance(exc, botocore.exceptions.ClientError):
        error = exc.response.get("Error", {})
        return f"{error.get('Code', 'Unknown')}: {error.get('Message', exc)}"
    return str(exc)


class S3Backend:
    """Drives CreateMultipartUpload / UploadPart / CompleteMultipartUpload."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if client is None:
            session = boto3.session.Session(region_name=region)
            client = session.client("s3", endpoint_url=endpoint_url)
        self.s3_client = client

    def open_multipart(self, container: str, key: str, storage_class: str) -> UploadSession:
        params = {"Bucket": container, "Key": key}
        if storage_class:
            params["StorageClass"] = storage_class
        try:
            response = self.s3_client.create_multipart_upload(**params)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exc:
            raise SessionError(
                f"Could not start upload to {container}/{key}: {_describe(exc)}"
            ) from exc
        upload_id = response.get("UploadId")
        if not upload_id:
            raise SessionError(f"S3 returned no upload id for {container}/{key}.")
        return UploadSession(session_id=upload_id, container=container, key=key)

    def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> CompletedPart:
        session.ensure_open()
        try:
            response = self.s3_client.upload_part(
                Bucket=session.container,
                Key=session.key,
                UploadId=session.session_id,
                PartNumber=part_number,
                Body=data,
                ContentLength=len(data),
            )
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exc:
            raise PartUploadError(part_number, _describe(exc), retryable=_is_transient(exc)) from exc
        return CompletedPart(part_number=part_number, integrity_tag=response.get("ETag", ""))

    def complete_multipart(self, session: UploadSession, parts: List[CompletedPart]) -> None:
        try:
            self.s3_client.complete_multipart_upload(
                Bucket=session.container,
                Key=session.key,
                UploadId=session.session_id,
                MultipartUpload={
                    "Parts": [
                        {"ETag": p.integrity_tag, "PartNumber": p.part_number} for p in parts
                    ]
                },
            )
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exc:
            raise SessionError(
                f"Could not complete upload {session.session_id}: {_describe(exc)}",
                session_id=session.session_id,
            ) from exc

    def abort_multipart(self, session: UploadSession) -> None:
        try:
            self.s3_client.abort_multipart_upload(
                Bucket=session.container,
                Key=session.key,
                UploadId=session.session_id,
            )
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exc:
            raise SessionError(
                f"Could not abort upload {session.session_id}: {_describe(exc)}",
                session_id=session.session_id,
            ) from exc

    def delete_object(self, container: str, key: str) -> None:
        # S3 reports success for keys that do not exist
        try:
            self.s3_client.delete_object(Bucket=container, Key=key)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as exc:
            raise SessionError(f"Could not delete {container}/{key}: {_describe(exc)}") from exc
        logger.debug(f"Deleted s3://{container}/{key}")
