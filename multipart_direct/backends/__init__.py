"""Storage backends able to receive a multipart upload."""

from typing import TYPE_CHECKING, List, Protocol

from ..errors import ConfigError
from ..session import CompletedPart, UploadSession

if TYPE_CHECKING:
    from ..config import Config


class MultipartBackend(Protocol):
    """What the upload driver needs from a storage service."""

    def open_multipart(self, container: str, key: str, storage_class: str) -> UploadSession:
        ...

    def upload_part(self, session: UploadSession, part_number: int, data: bytes) -> CompletedPart:
        ...

    def complete_multipart(self, session: UploadSession, parts: List[CompletedPart]) -> None:
        ...

    def abort_multipart(self, session: UploadSession) -> None:
        ...

    def delete_object(self, container: str, key: str) -> None:
        ...


def get_backend(cfg: "Config") -> MultipartBackend:
    """Build the backend named by ``cfg.backend``."""
    if cfg.backend == "s3":
        from .s3 import S3Backend

        return S3Backend(region=cfg.region, endpoint_url=cfg.endpoint_url)
    if cfg.backend == "azure":
        from .azure import AzureBlockBackend

        return AzureBlockBackend(cfg.conn_str)
    raise ConfigError(f"Unknown storage backend '{cfg.backend}'. Use 's3' or 'azure'.")
