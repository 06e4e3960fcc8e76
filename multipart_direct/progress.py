"""Upload progress: the byte counter and the ways of showing it."""

import logging
import time
from typing import Optional

from tqdm import tqdm


class ProgressState:
    """Bytes sent so far. Only the upload driver advances it."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.bytes_done = 0

    def advance(self, nbytes: int) -> int:
        if nbytes < 0:
            raise ValueError("progress cannot go backwards")
        if self.bytes_done + nbytes > self.total:
            raise ValueError(
                f"progress overflow: {self.bytes_done} + {nbytes} > {self.total}"
            )
        self.bytes_done += nbytes
        return self.bytes_done

    @property
    def fraction(self) -> float:
        return self.bytes_done / self.total if self.total else 1.0


class NullProgress:
    """Reporter that shows nothing. Base class for the others."""

    def on_start(self, total: int, label: str) -> None:
        pass

    def on_part(self, part_number: int, part_count: int) -> None:
        pass

    def on_update(self, bytes_done: int, total: int) -> None:
        pass

    def on_finish(self) -> None:
        pass


class TqdmProgress(NullProgress):
    """Terminal progress bar with transfer rate and ETA."""

    def __init__(self, **tqdm_kwargs) -> None:
        self.tqdm_kwargs = tqdm_kwargs
        self.bar: Optional[tqdm] = None

    def on_start(self, total: int, label: str) -> None:
        self.bar = tqdm(
            total=total,
            desc=label,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            **self.tqdm_kwargs,
        )

    def on_part(self, part_number: int, part_count: int) -> None:
        if self.bar is not None:
            self.bar.set_postfix_str(f"chunk {part_number}/{part_count}", refresh=False)

    def on_update(self, bytes_done: int, total: int) -> None:
        if self.bar is not None:
            self.bar.update(bytes_done - self.bar.n)

    def on_finish(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None


class LogProgress(NullProgress):
    """Logs one line per part with percentage, speed and ETA.

    Used when stdout is not a terminal, where a redrawn bar is just noise.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self._t0 = 0.0
        self._part = (0, 0)

    def on_start(self, total: int, label: str) -> None:
        self._t0 = time.monotonic()
        self.logger.info(f"{label} ({total:,} bytes)")

    def on_part(self, part_number: int, part_count: int) -> None:
        self._part = (part_number, part_count)

    def on_update(self, bytes_done: int, total: int) -> None:
        elapsed = max(time.monotonic() - self._t0, 0.001)
        rate = bytes_done / elapsed
        eta_s = (total - bytes_done) / rate if rate else 0
        pct = bytes_done / total * 100 if total else 100.0
        self.logger.info(
            f"[{pct:5.1f}%] chunk {self._part[0]}/{self._part[1]}  "
            f"speed={rate / (1024 * 1024):.1f} MB/s  eta={fmt_seconds(eta_s)}"
        )

    def on_finish(self) -> None:
        self.logger.info(f"All chunks uploaded in {fmt_seconds(time.monotonic() - self._t0)}.")


def fmt_seconds(s: float) -> str:
    if s <= 0:
        return "--:--"
    s = int(s)
    h, rem = divmod(s, 3600)
    m, sec = divmod(rem, 60)
    if h:
        return f"{h}h{m:02d}m{sec:02d}s"
    if m:
        return f"{m}m{sec:02d}s"
    return f"{sec}s"
