"""Command-line entry point.

Usage:
    python -m multipart_direct <file> [key] [--bucket NAME] [--backend s3|azure]
                               [--chunk-size-mb N] [--storage-class CLASS]
                               [--delete-existing] [--no-progress] [--dry-run]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .backends import get_backend
from .config import BACKENDS, Config
from .errors import ConfigError, UploadCancelledError, UploadError
from .plan import MIB
from .progress import LogProgress, NullProgress, TqdmProgress
from .source import FileSource
from .uploader import ChunkUploader

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILED = 2
EXIT_CANCELLED = 130


def build_logger(log_dir: Path) -> logging.Logger:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "multipart_direct.log"

    logger = logging.getLogger("multipart_direct")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logger.addHandler(console)
    logger.addHandler(fh)
    return logger


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="multipart-direct",
        description="Upload one file to S3 or Azure Blob Storage as a chunked multipart upload.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  # Upload to the bucket named in BUCKET_NAME, key = file name\n"
            "  python -m multipart_direct backup.tar\n\n"
            "  # Explicit bucket and key, 64 MB chunks\n"
            "  python -m multipart_direct backup.tar archive/2024/backup.tar \\\n"
            "      --bucket my-bucket --chunk-size-mb 64\n\n"
            "  # Replace whatever is stored at the key first\n"
            "  python -m multipart_direct sample.txt --delete-existing\n"
        ),
    )
    parser.add_argument("path", help="File to upload.")
    parser.add_argument(
        "key",
        nargs="?",
        default=None,
        help="Destination object key. Defaults to the file name.",
    )
    parser.add_argument("--bucket", help="Bucket or container name. Overrides BUCKET_NAME.")
    parser.add_argument("--backend", choices=BACKENDS, help="Overrides STORAGE_BACKEND.")
    parser.add_argument("--chunk-size-mb", type=int, metavar="N", help="Overrides CHUNK_SIZE_MB.")
    parser.add_argument("--storage-class", metavar="CLASS", help="Overrides STORAGE_CLASS.")
    parser.add_argument(
        "--delete-existing",
        action="store_true",
        help="Delete any object already stored at the destination key before uploading.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Log progress lines instead of drawing a progress bar.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate config and print the upload plan without uploading.",
    )
    return parser.parse_args(argv)


def apply_overrides(cfg: Config, args: argparse.Namespace) -> None:
    if args.bucket:
        cfg.bucket_name = args.bucket
    if args.backend:
        cfg.backend = args.backend
    if args.chunk_size_mb is not None:
        cfg.chunk_size = args.chunk_size_mb * MIB
    if args.storage_class:
        cfg.storage_class = args.storage_class


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # Validate everything before touching the network
    try:
        cfg = Config()
        apply_overrides(cfg, args)
        cfg.validate()
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    logger = build_logger(Path(cfg.log_path) if cfg.log_path else Path.cwd() / "logs")

    if not cfg.bucket_name:
        logger.error("No bucket name provided. Pass --bucket or set BUCKET_NAME in .env.")
        return EXIT_CONFIG

    file_path = Path(args.path).expanduser().resolve()
    if not file_path.is_file():
        logger.error(f"File not found: {file_path}")
        return EXIT_CONFIG

    source = FileSource(file_path)
    key = args.key or file_path.name

    if args.dry_run:
        uploader = ChunkUploader(cfg, None, source, cfg.bucket_name, key, logger=logger)
        try:
            plan = uploader.plan()
        except UploadError as exc:
            logger.error(str(exc))
            return EXIT_CONFIG
        logger.info(
            f"[DRY RUN] {file_path.name} -> {cfg.backend}://{cfg.bucket_name}/{key}: "
            f"{plan.part_count} chunk(s), last chunk {plan.last_part_size:,} bytes"
        )
        return EXIT_OK

    if args.no_progress or not sys.stdout.isatty():
        reporter: NullProgress = LogProgress(logger)
    else:
        reporter = TqdmProgress()

    try:
        backend = get_backend(cfg)
        uploader = ChunkUploader(
            cfg,
            backend,
            source,
            cfg.bucket_name,
            key,
            reporter=reporter,
            logger=logger,
            delete_existing=args.delete_existing,
        )
        uploader.install_signal_handlers()
        parts = uploader.run()
    except (UploadCancelledError, KeyboardInterrupt):
        logger.warning("Upload cancelled.")
        return EXIT_CANCELLED
    except ConfigError as exc:
        logger.error(str(exc))
        return EXIT_CONFIG
    except (UploadError, OSError) as exc:
        logger.error(f"Upload failed: {exc}")
        return EXIT_FAILED

    logger.info(f"Done uploading {file_path.name} ({len(parts)} chunk(s)).")
    return EXIT_OK
