"""Upload errors.

Every failure of the orchestrator is one of these. Backends translate their
SDK exceptions into this taxonomy so the CLI only has one hierarchy to map
to exit codes.
"""

from typing import Iterable, Optional


class UploadError(RuntimeError):
    """Base class for upload errors"""


class ConfigError(ValueError):
    """Invalid or missing configuration."""


class EmptyFileError(UploadError):
    """The source file has no content; nothing is uploaded."""


class TooManyPartsError(UploadError):
    def __init__(self, part_count: int, max_parts: int, min_chunk_mb: int) -> None:
        super().__init__(
            f"Too many parts ({part_count:,} > {max_parts:,}). "
            f"Try increasing the chunk size to at least {min_chunk_mb:,} MB."
        )
        self.part_count = part_count
        self.max_parts = max_parts
        self.min_chunk_mb = min_chunk_mb


class PartUploadError(UploadError):
    """A single part could not be uploaded.

    ``retryable`` is set by the backend when the failure looks transient
    (connection drops, throttling, 5xx) and the driver may try again.
    """

    def __init__(self, part_number: int, message: str, retryable: bool = False) -> None:
        super().__init__(f"Part {part_number}: {message}")
        self.part_number = part_number
        self.retryable = retryable


class IncompleteUploadError(UploadError):
    def __init__(
        self,
        part_count: int,
        missing: Iterable[int] = (),
        duplicated: Iterable[int] = (),
        unexpected: Iterable[int] = (),
    ) -> None:
        self.part_count = part_count
        self.missing = sorted(missing)
        self.duplicated = sorted(duplicated)
        self.unexpected = sorted(unexpected)
        problems = []
        if self.missing:
            problems.append(f"missing {_fmt_numbers(self.missing)}")
        if self.duplicated:
            problems.append(f"duplicated {_fmt_numbers(self.duplicated)}")
        if self.unexpected:
            problems.append(f"out of range {_fmt_numbers(self.unexpected)}")
        super().__init__(
            f"Part set does not cover 1..{part_count}: " + "; ".join(problems)
        )


class SessionError(UploadError):
    """Initiate, finalize, abort or delete failed, or the session is spent."""

    def __init__(self, message: str, session_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.session_id = session_id


class UploadCancelledError(UploadError):
    """The user interrupted the upload."""


def _fmt_numbers(numbers: list, limit: int = 10) -> str:
    shown = ", ".join(str(n) for n in numbers[:limit])
    if len(numbers) > limit:
        shown += f", ... ({len(numbers)} total)"
    return shown
