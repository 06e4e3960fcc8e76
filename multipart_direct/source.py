from pathlib import Path
from typing import Union


class FileSource:
    """Read-only, random-access view of the file being uploaded."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read(self, offset: int, length: int) -> bytes:
        """Return exactly ``length`` bytes starting at ``offset``."""
        with self.path.open("rb") as fh:
            fh.seek(offset)
            data = fh.read(length)
        if len(data) != length:
            raise OSError(
                f"Short read from {self.path}: wanted {length} bytes at offset "
                f"{offset}, got {len(data)}. Was the file modified during upload?"
            )
        return data
