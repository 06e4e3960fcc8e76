"""Chunked upload orchestration: plan, open session, send parts, finalize."""

import logging
import signal
import time
from typing import List, Optional

from .backends import MultipartBackend
from .config import Config
from .errors import PartUploadError, SessionError, UploadCancelledError
from .plan import UploadPlan, plan_upload
from .progress import NullProgress, ProgressState
from .session import CompletedPart, UploadSession, abort, finalize
from .source import FileSource


class ChunkUploader:
    """Uploads a single file as a sequential multipart upload."""

    def __init__(
        self,
        cfg: Config,
        backend: MultipartBackend,
        source: FileSource,
        container_name: str,
        key: str,
        reporter: Optional[NullProgress] = None,
        logger: Optional[logging.Logger] = None,
        delete_existing: bool = False,
    ) -> None:
        self.cfg = cfg
        self.backend = backend
        self.source = source
        self.container_name = container_name
        self.key = key
        self.reporter = reporter or NullProgress()
        self.logger = logger or logging.getLogger(__name__)
        self.delete_existing = delete_existing

        self.progress: Optional[ProgressState] = None
        self._abort = False

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to a graceful stop between parts."""
        signal.signal(signal.SIGINT, self._handle_interrupt)
        signal.signal(signal.SIGTERM, self._handle_interrupt)

    def _handle_interrupt(self, signum, frame):  # type: ignore[override]
        self.logger.warning("Interrupt received. Stopping after the current chunk...")
        self.cancel()

    def cancel(self) -> None:
        self._abort = True

    def _check_cancelled(self) -> None:
        if self._abort:
            raise UploadCancelledError("Upload aborted by user.")

    # ------------------------------------------------------------------
    # Reporter calls never affect the upload
    # ------------------------------------------------------------------

    def _report(self, method: str, *args) -> None:
        try:
            getattr(self.reporter, method)(*args)
        except Exception as exc:
            self.logger.warning(f"Progress reporter failed in {method}: {exc}")

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def plan(self) -> UploadPlan:
        return plan_upload(self.source.size, self.cfg.chunk_size, self.cfg.max_parts)

    def _upload_part_with_retry(
        self, session: UploadSession, part_number: int, data: bytes
    ) -> CompletedPart:
        """Upload one part, retrying transient failures with exponential backoff."""
        for attempt in range(1, self.cfg.max_retries + 2):  # attempt 1 = first try
            self._check_cancelled()
            try:
                return self.backend.upload_part(session, part_number, data)
            except PartUploadError as exc:
                if not exc.retryable or attempt > self.cfg.max_retries:
                    self.logger.error(f"Chunk {part_number}: giving up after {attempt} attempt(s) - {exc}")
                    raise
                delay = self.cfg.retry_base_delay ** attempt
                self.logger.warning(
                    f"Chunk {part_number}: transient error (attempt {attempt}/{self.cfg.max_retries}), "
                    f"retrying in {delay}s - {exc}"
                )
                time.sleep(delay)
        raise AssertionError("unreachable")

    def upload_parts(
        self, plan: UploadPlan, session: UploadSession, source: FileSource
    ) -> List[CompletedPart]:
        """Send every part of ``plan`` in order and collect the completion tokens."""
        self.progress = ProgressState(plan.total_size)
        completed: List[CompletedPart] = []

        for part in plan.parts():
            self._check_cancelled()
            self._report("on_part", part.part_number, plan.part_count)
            data = source.read(part.offset, part.length)
            self.logger.debug(
                f"Chunk {part.part_number}/{plan.part_count}: "
                f"offset={part.offset:,} length={part.length:,}"
            )
            completed.append(self._upload_part_with_retry(session, part.part_number, data))
            bytes_done = self.progress.advance(part.length)
            self._report("on_update", bytes_done, plan.total_size)

        return completed

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    def run(self) -> List[CompletedPart]:
        """Execute the upload. Returns the committed parts; raises on failure."""
        plan = self.plan()
        self.logger.info(
            f"File : {self.source.path}  ({plan.total_size:,} bytes / "
            f"{plan.total_size / (1024**3):.3f} GiB)"
        )
        self.logger.info(
            f"Chunk: {plan.chunk_size / (1024 * 1024):g} MB  |  Chunks: {plan.part_count}"
        )
        self.logger.info(f"Target: {self.container_name}/{self.key}")

        if self.delete_existing:
            self.backend.delete_object(self.container_name, self.key)
            self.logger.info("Existing object deleted.")

        session = self.backend.open_multipart(
            self.container_name, self.key, self.cfg.storage_class
        )
        self.logger.info(f"Started upload session {session.session_id}.")

        self._report("on_start", plan.total_size, f"Uploading {self.source.name} to {self.container_name}")
        try:
            parts = self.upload_parts(plan, session, self.source)
        except (UploadCancelledError, KeyboardInterrupt):
            self._abort_session(session)
            raise
        except PartUploadError:
            self.logger.error(f"Upload failed; session {session.session_id} left open.")
            raise
        finally:
            self._report("on_finish")

        self.logger.info("All chunks uploaded - completing upload.")
        finalize(self.backend, session, parts, plan.part_count)
        self.logger.info(f"Committed '{self.key}' to '{self.container_name}'.")
        return parts

    def _abort_session(self, session: UploadSession) -> None:
        try:
            abort(self.backend, session)
        except SessionError as exc:
            self.logger.warning(f"Could not abort session {session.session_id}: {exc}")
        else:
            self.logger.warning(f"Aborted upload session {session.session_id}.")
