"""Run a full vault backup: archive, purge the bucket, upload, clean up."""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .backup import create_vault_backup
from .config import BackupConfig, backup_filename
from .errors import ArchiveIOError
from .storage import ObjectStorageClient


@dataclass
class BackupResult:
    """Outcome of a successful backup run."""
    archive_path: Path
    object_key: str
    archive_size: int
    file_count: int
    deleted_objects: int
    local_cleanup_ok: bool


def read_archive(archive_path: Path) -> bytes:
    """Read the whole archive into memory for a single-object upload."""
    try:
        with open(archive_path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise ArchiveIOError(f"Error opening file {archive_path}: {e}") from e


def remove_local_archive(archive_path: Path) -> bool:
    """
    Delete the local archive after upload.

    A failure is reported but does not fail the backup, since the upload
    already succeeded.

    Returns:
        True if the file was removed, False otherwise
    """
    try:
        os.remove(archive_path)
    except OSError as e:
        print(f"⚠️  Could not delete local archive {archive_path}: {e}")
        return False
    print(f"✓ Removed local archive {archive_path.name}")
    return True


def run_backup(
    config: BackupConfig,
    storage_client: ObjectStorageClient,
    now: Optional[datetime] = None
) -> BackupResult:
    """
    Back up the vault to object storage.

    Steps run strictly in order and the first error propagates unchanged.
    Nothing is rolled back: an archive left by a failed run stays on disk
    and a partly purged bucket stays partly purged.

    Args:
        config: Settings for this run
        storage_client: Client bound to the target bucket
        now: Timestamp used for the archive name (default: current time)

    Returns:
        BackupResult describing what was done

    Raises:
        BackupError: Any ConfigError, TraversalError, ArchiveIOError or StorageError
    """
    archive_name = backup_filename(config.archive_format, now)
    archive_path = config.output_dir / archive_name

    file_count = create_vault_backup(config.vault_path, archive_path, config.archive_format)

    deleted = 0
    if config.purge_bucket:
        print(f"🗑️  Deleting all objects in bucket '{config.bucket_name}'...")
        deleted = storage_client.delete_all_objects()
        print(f"✓ Deleted {deleted} object(s)")

    try:
        archive_size = archive_path.stat().st_size
    except OSError as e:
        raise ArchiveIOError(f"Error reading archive {archive_path}: {e}") from e
    print(f"📤 Uploading {archive_name} ({archive_size} bytes)...")
    if config.streaming_upload:
        storage_client.upload_file(archive_path, archive_name)
    else:
        storage_client.put_object(archive_name, read_archive(archive_path))
    print("✓ File uploaded successfully")

    cleanup_ok = remove_local_archive(archive_path)

    return BackupResult(
        archive_path=archive_path,
        object_key=archive_name,
        archive_size=archive_size,
        file_count=file_count,
        deleted_objects=deleted,
        local_cleanup_ok=cleanup_ok,
    )
