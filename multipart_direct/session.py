"""Multipart session state and the finalize step."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List

from .errors import IncompleteUploadError, SessionError

if TYPE_CHECKING:
    from .backends import MultipartBackend

logger = logging.getLogger(__name__)

OPEN = "open"
COMPLETED = "completed"
ABORTED = "aborted"


@dataclass(frozen=True)
class CompletedPart:
    part_number: int
    integrity_tag: str


@dataclass
class UploadSession:
    """One in-progress multipart upload.

    Opened by the backend's initiate call; spent by exactly one finalize or
    abort, after which every further use raises ``SessionError``.
    """

    session_id: str
    container: str
    key: str
    state: str = field(default=OPEN, compare=False)

    @property
    def destination(self) -> str:
        return f"{self.container}/{self.key}"

    @property
    def is_open(self) -> bool:
        return self.state == OPEN

    def ensure_open(self) -> None:
        if not self.is_open:
            raise SessionError(
                f"Upload session {self.session_id} is {self.state}; it cannot be reused.",
                session_id=self.session_id,
            )


def check_part_set(parts: Iterable[CompletedPart], part_count: int) -> List[CompletedPart]:
    """Return ``parts`` sorted by part number.

    Raises ``IncompleteUploadError`` unless the numbers are exactly
    ``1..part_count`` with no duplicates.
    """
    ordered = sorted(parts, key=lambda p: p.part_number)
    counts = Counter(p.part_number for p in ordered)
    expected = set(range(1, part_count + 1))
    missing = expected - counts.keys()
    duplicated = [n for n, c in counts.items() if c > 1]
    unexpected = counts.keys() - expected
    if missing or duplicated or unexpected:
        raise IncompleteUploadError(part_count, missing, duplicated, unexpected)
    return ordered


def finalize(
    backend: "MultipartBackend",
    session: UploadSession,
    parts: Iterable[CompletedPart],
    part_count: int,
) -> None:
    """Commit ``session`` with the full, ordered part list."""
    session.ensure_open()
    ordered = check_part_set(parts, part_count)
    logger.debug(f"Completing session {session.session_id} with {len(ordered)} part(s).")
    backend.complete_multipart(session, ordered)
    session.state = COMPLETED


def abort(backend: "MultipartBackend", session: UploadSession) -> None:
    session.ensure_open()
    backend.abort_multipart(session)
    session.state = ABORTED
