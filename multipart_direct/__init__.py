"""Chunked multipart upload of a single file to S3 or Azure Blob Storage."""

from .errors import (
    ConfigError,
    EmptyFileError,
    IncompleteUploadError,
    PartUploadError,
    SessionError,
    TooManyPartsError,
    UploadCancelledError,
    UploadError,
)
from .plan import PartDescriptor, UploadPlan, plan_upload
from .session import CompletedPart, UploadSession, finalize
from .uploader import ChunkUploader

__version__ = "0.1.0"
