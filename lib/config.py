"""Configuration for vault backups, read once at startup."""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .backup import ARCHIVE_FORMATS
from .errors import ConfigError


# Environment variable -> BackupConfig field
ENV_VARS = {
    'AWS_S3_BUCKET_NAME': 'bucket_name',
    'OBSIDIAN_VAULT_PATH': 'vault_path',
    'AWS_REGION': 'region',
    'AWS_ACCESS_KEY': 'access_key',
    'AWS_SECRET_KEY': 'secret_key',
    'AWS_ENDPOINT_URL': 'endpoint_url',
    'OBSIDIAN_BACKUP_FORMAT': 'archive_format',
    'OBSIDIAN_BACKUP_PURGE': 'purge_bucket',
    'OBSIDIAN_BACKUP_DIR': 'output_dir',
}

SETTINGS_KEYS = set(ENV_VARS.values()) | {'streaming_upload'}

TRUE_VALUES = {'1', 'true', 'yes', 'on'}
FALSE_VALUES = {'0', 'false', 'no', 'off'}

TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S'


@dataclass(frozen=True)
class BackupConfig:
    """Immutable settings for a single backup run."""
    bucket_name: str
    vault_path: Path
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    archive_format: str = 'tar.gz'
    purge_bucket: bool = True
    output_dir: Path = Path('.')
    streaming_upload: bool = False


def resolve_path(path: str) -> str:
    """
    Expand a leading '~/' against the user's home directory.

    Any other path is returned unchanged.

    Examples:
        "~/vault" -> "/home/user/vault"
        "/srv/vault" -> "/srv/vault"
    """
    if path.startswith('~/'):
        try:
            home_dir = Path.home()
        except RuntimeError as e:
            raise ConfigError(f"Error getting user home directory: {e}") from e
        return str(home_dir / path[2:])
    return path


def backup_filename(archive_format: str, now: Optional[datetime] = None) -> str:
    """Build the timestamped archive filename, e.g. '2024-03-11_09-30-00.tar.gz'."""
    if archive_format not in ARCHIVE_FORMATS:
        raise ConfigError(f"Invalid archive format: {archive_format}")
    now = now or datetime.now()
    return f"{now.strftime(TIMESTAMP_FORMAT)}.{archive_format}"


def parse_bool(value: Union[str, bool], name: str) -> bool:
    """Parse a boolean setting from a string such as 'yes' or 'false'."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _load_settings_file(settings_file: Union[str, Path]) -> Dict[str, Any]:
    settings_path = Path(settings_file)
    if not settings_path.is_file():
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            settings = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {settings_path}: {e}") from e

    if not isinstance(settings, dict):
        raise ConfigError(f"Settings file must contain a mapping: {settings_path}")

    unknown = set(settings) - SETTINGS_KEYS
    if unknown:
        raise ConfigError(f"Unknown settings in {settings_path}: {', '.join(sorted(unknown))}")

    return settings


def _load_env_file(env_file: Optional[Union[str, Path]]) -> None:
    # An explicitly requested file must exist; the default .env is optional
    # since the variables may already be exported.
    if env_file is None:
        # Only the working directory is searched, never its parents
        default_env = Path.cwd() / '.env'
        if default_env.is_file():
            load_dotenv(default_env)
        return
    if not Path(env_file).is_file():
        raise ConfigError(f"Error loading env file: {env_file}")
    load_dotenv(env_file)


def load_config(
    env_file: Optional[Union[str, Path]] = None,
    settings_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    require_vault: bool = True
) -> BackupConfig:
    """
    Build the backup configuration.

    Values come from the YAML settings file, then the environment (after
    loading the .env file), then explicit overrides; later sources win.
    Overrides set to None are ignored.

    Args:
        env_file: Path to a .env file (default: .env in the working directory, if any)
        settings_file: Optional YAML settings file
        overrides: Field values given on the command line
        require_vault: Whether OBSIDIAN_VAULT_PATH must be set (listing the bucket needs no vault)

    Returns:
        BackupConfig for the run

    Raises:
        ConfigError: If a required value is missing or a value is invalid
    """
    values: Dict[str, Any] = {}

    if settings_file is not None:
        values.update(_load_settings_file(settings_file))

    _load_env_file(env_file)
    for env_var, field_name in ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[field_name] = env_value

    for field_name, value in (overrides or {}).items():
        if value is not None:
            values[field_name] = value

    bucket_name = values.get('bucket_name')
    if not bucket_name:
        raise ConfigError("AWS_S3_BUCKET_NAME is not set")

    vault_value = values.get('vault_path', '')
    if require_vault and not vault_value:
        raise ConfigError("OBSIDIAN_VAULT_PATH is not set")

    archive_format = str(values.get('archive_format', 'tar.gz'))
    if archive_format not in ARCHIVE_FORMATS:
        raise ConfigError(
            f"Invalid archive format: {archive_format}. Must be one of {', '.join(ARCHIVE_FORMATS)}"
        )

    # The tar.gz backup replaces the bucket contents; the zip backup adds to them
    if 'purge_bucket' in values:
        purge_bucket = parse_bool(values['purge_bucket'], 'purge_bucket')
    else:
        purge_bucket = archive_format == 'tar.gz'

    return BackupConfig(
        bucket_name=str(bucket_name),
        vault_path=Path(resolve_path(str(vault_value))),
        region=values.get('region'),
        access_key=values.get('access_key'),
        secret_key=values.get('secret_key'),
        endpoint_url=values.get('endpoint_url'),
        archive_format=archive_format,
        purge_bucket=purge_bucket,
        output_dir=Path(resolve_path(str(values.get('output_dir', '.')))),
        streaming_upload=parse_bool(values.get('streaming_upload', False), 'streaming_upload'),
    )
