"""Runtime configuration, read from the environment and an optional .env file.

One ``Config`` is built at process start and handed to the backend factory
and the uploader; nothing else reads the environment.
"""

import base64
import binascii
import os
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .plan import MAX_PARTS, MIB

_DEFAULTS = {
    "STORAGE_BACKEND": "s3",
    "AWS_REGION": "us-east-1",
    "STORAGE_CLASS": "DEEP_ARCHIVE",
    "CHUNK_SIZE_MB": 5,
    "MAX_PARTS": MAX_PARTS,
    "MAX_RETRIES": 3,
    "RETRY_BASE_DELAY": 2,
}

BACKENDS = ("s3", "azure")

# Per-backend part size limits, in bytes
_CHUNK_LIMITS = {
    "s3": (5 * MIB, 5 * 1024 * MIB),
    "azure": (1 * MIB, 4000 * MIB),
}


def _int_env(name: str) -> int:
    raw = os.getenv(name, str(_DEFAULTS[name]))
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'.") from None


class Config:
    def __init__(self) -> None:
        load_dotenv()

        self.backend: str = os.getenv("STORAGE_BACKEND", _DEFAULTS["STORAGE_BACKEND"]).lower()
        self.bucket_name: str = os.getenv("BUCKET_NAME", "")
        self.region: str = os.getenv("AWS_REGION", _DEFAULTS["AWS_REGION"])
        self.endpoint_url: Optional[str] = os.getenv("S3_ENDPOINT_URL") or None
        self.storage_class: str = os.getenv("STORAGE_CLASS", _DEFAULTS["STORAGE_CLASS"])
        self.conn_str: str = os.getenv("AZURE_CONN_STR", "")
        self.chunk_size: int = _int_env("CHUNK_SIZE_MB") * MIB
        self.max_parts: int = _int_env("MAX_PARTS")
        self.max_retries: int = _int_env("MAX_RETRIES")
        self.retry_base_delay: int = _int_env("RETRY_BASE_DELAY")
        self.log_path: Optional[str] = os.getenv("LOG_PATH")

    def validate(self) -> None:
        """Check every setting. Run once, after CLI overrides are applied."""
        if self.backend not in BACKENDS:
            raise ConfigError(
                f"STORAGE_BACKEND must be one of {', '.join(BACKENDS)}; got '{self.backend}'."
            )

        low, high = _CHUNK_LIMITS[self.backend]
        if self.chunk_size < low:
            raise ConfigError(
                f"Chunk size must be at least {low // MIB} MB for the {self.backend} backend."
            )
        if self.chunk_size > high:
            raise ConfigError(
                f"Chunk size exceeds the {self.backend} maximum ({high // MIB} MB). "
                f"Got {self.chunk_size // MIB} MB."
            )
        if not 1 <= self.max_parts <= MAX_PARTS:
            raise ConfigError(f"MAX_PARTS must be between 1 and {MAX_PARTS:,}.")
        if self.max_retries < 0 or self.retry_base_delay < 0:
            raise ConfigError("MAX_RETRIES and RETRY_BASE_DELAY must not be negative.")

        if self.backend == "azure":
            self._validate_connection_string()

    def _validate_connection_string(self) -> None:
        """Parse the Azure connection string and validate it before connecting."""
        cs = self.conn_str.strip()
        if not cs:
            raise ConfigError(
                "AZURE_CONN_STR is not set. Copy a connection string from "
                "Azure Portal → Storage account → Access keys."
            )

        parts = {}
        for segment in cs.split(";"):
            segment = segment.strip()
            if not segment:
                continue
            if "=" not in segment:
                raise ConfigError(
                    f"Malformed AZURE_CONN_STR: segment '{segment}' has no '=' separator."
                )
            key, _, value = segment.partition("=")
            parts[key.strip()] = value.strip()

        for required in ("AccountName", "AccountKey", "DefaultEndpointsProtocol"):
            if not parts.get(required):
                raise ConfigError(f"AZURE_CONN_STR is missing the '{required}' field.")

        if parts["DefaultEndpointsProtocol"].lower() != "https":
            raise ConfigError(
                "AZURE_CONN_STR uses a non-HTTPS protocol. Set DefaultEndpointsProtocol=https."
            )

        # The key ends with '=' padding, which the partition above keeps intact
        raw_key = parts["AccountKey"]
        padded = raw_key + "=" * (-len(raw_key) % 4)
        try:
            decoded = base64.b64decode(padded, validate=True)
        except (binascii.Error, ValueError):
            raise ConfigError(
                "AZURE_CONN_STR AccountKey is not valid base64; it is corrupted or truncated."
            ) from None

        # Azure storage keys decode to exactly 64 bytes
        if len(decoded) != 64:
            raise ConfigError(
                f"AZURE_CONN_STR AccountKey decoded to {len(decoded)} bytes (expected 64). "
                "The key appears truncated."
            )
