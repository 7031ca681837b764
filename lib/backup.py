"""Backup utilities for Obsidian vault."""

import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path
from typing import Iterator, Tuple, Union

from .errors import ArchiveIOError, ConfigError, TraversalError


ARCHIVE_FORMATS = ('tar.gz', 'zip')


def _raise_traversal_error(error: OSError) -> None:
    raise TraversalError(f"Cannot traverse {error.filename}: {error.strerror}") from error


def iter_vault_files(vault_path: Union[str, Path]) -> Iterator[Tuple[Path, str]]:
    """
    Walk the vault and yield every regular file in archive order.

    Directories are visited depth-first with names sorted at each level.
    Symlinks are never followed, and anything that is not a regular file
    (symlinks, sockets, FIFOs, devices) is skipped.

    Args:
        vault_path: Root directory to walk

    Yields:
        Tuples of (absolute file path, entry name relative to the root using '/')

    Raises:
        TraversalError: If a directory cannot be listed
        ArchiveIOError: If a file cannot be inspected
    """
    vault_path = Path(vault_path)

    for root, dirs, files in os.walk(vault_path, onerror=_raise_traversal_error):
        dirs.sort()
        for name in sorted(files):
            file_path = Path(root) / name
            try:
                mode = os.lstat(file_path).st_mode
            except OSError as e:
                raise ArchiveIOError(f"Cannot stat {file_path}: {e}") from e

            if not stat.S_ISREG(mode):
                continue

            arcname = file_path.relative_to(vault_path).as_posix()
            yield file_path, arcname


def _add_tar_entry(tar: tarfile.TarFile, file_path: Path, arcname: str) -> None:
    # gettarinfo stats the file, so the header size is taken at the instant
    # of reading; addfile copies exactly that many bytes.
    tarinfo = tar.gettarinfo(str(file_path), arcname)
    if tarinfo.islnk():
        # Hardlinked files are stored in full under every name
        tarinfo.type = tarfile.REGTYPE
        tarinfo.linkname = ''
        tarinfo.size = os.lstat(file_path).st_size
    with open(file_path, 'rb') as src:
        tar.addfile(tarinfo, src)


def _add_zip_entry(zipf: zipfile.ZipFile, file_path: Path, arcname: str) -> None:
    try:
        arcname.encode('utf-8')
    except UnicodeEncodeError as e:
        raise ArchiveIOError(
            f"File name is not valid UTF-8 and cannot be stored in a zip: {os.fsencode(file_path)!r}"
        ) from e

    # Timestamps before 1980 are clamped to 1980-01-01, the earliest zip can hold
    zinfo = zipfile.ZipInfo.from_file(file_path, arcname, strict_timestamps=False)
    zinfo.compress_type = zipfile.ZIP_DEFLATED
    with open(file_path, 'rb') as src, zipf.open(zinfo, 'w') as dest:
        shutil.copyfileobj(src, dest)


def create_vault_backup(
    vault_path: Union[str, Path],
    backup_filename: Union[str, Path],
    archive_format: str = 'tar.gz'
) -> int:
    """
    Create a tar.gz or zip backup of the vault.

    Every regular file under the vault is streamed into the archive under its
    path relative to the vault root. Name, size, permission bits and
    modification time are kept in both formats.

    Args:
        vault_path: Path to the Obsidian vault
        backup_filename: Destination archive path (overwritten if it exists)
        archive_format: 'tar.gz' or 'zip'

    Returns:
        Number of files written to the archive

    Raises:
        ConfigError: If the archive format is not supported
        TraversalError: If walking the vault fails
        ArchiveIOError: If a source file or the archive cannot be read or written
    """
    if archive_format not in ARCHIVE_FORMATS:
        raise ConfigError(
            f"Invalid archive format: {archive_format}. Must be one of {', '.join(ARCHIVE_FORMATS)}"
        )

    vault_path = Path(vault_path)
    backup_path = Path(backup_filename)
    # The archive may be written inside the vault; never archive it into itself
    backup_real = os.path.realpath(backup_path)

    print(f"Creating backup: {backup_filename}")
    count = 0
    try:
        if archive_format == 'tar.gz':
            with tarfile.open(backup_path, 'w:gz') as tar:
                for file_path, arcname in iter_vault_files(vault_path):
                    if os.path.realpath(file_path) == backup_real:
                        continue
                    _add_tar_entry(tar, file_path, arcname)
                    count += 1
        else:
            with zipfile.ZipFile(backup_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
                for file_path, arcname in iter_vault_files(vault_path):
                    if os.path.realpath(file_path) == backup_real:
                        continue
                    _add_zip_entry(zipf, file_path, arcname)
                    count += 1
    except OSError as e:
        raise ArchiveIOError(f"Error writing backup {backup_filename}: {e}") from e

    print(f"✓ Backup created successfully ({count} files)\n")
    return count
