#!/usr/bin/env python3
"""
Obsidian Vault Backup
Archive an Obsidian vault (tar.gz or zip) and upload it to S3-compatible object storage.
"""

import sys
import argparse
from pathlib import Path

from lib.backup import ARCHIVE_FORMATS, create_vault_backup, iter_vault_files
from lib.config import backup_filename, load_config, resolve_path
from lib.errors import BackupError, ConfigError
from lib.orchestrator import run_backup
from lib.storage import StorageClientFactory


def config_overrides(args) -> dict:
    """Collect command-line values that override the environment."""
    return {
        'vault_path': getattr(args, 'vault', None),
        'bucket_name': getattr(args, 'bucket', None),
        'archive_format': getattr(args, 'format', None),
        'purge_bucket': getattr(args, 'purge', None),
        'output_dir': getattr(args, 'output_dir', None),
        # Only override when the flag is given, so the settings file can enable it
        'streaming_upload': True if getattr(args, 'streaming_upload', False) else None,
    }


def handle_backup_command(args):
    """Handle the 'backup' subcommand."""
    config = load_config(args.env_file, args.config, config_overrides(args))

    if not config.vault_path.is_dir():
        raise ConfigError(f"Vault path does not exist: {config.vault_path}")

    client = StorageClientFactory.create_client(config)

    # Print header
    print("☁️  Obsidian Vault Backup")
    print("=" * 80)
    print(f"Vault: {config.vault_path}")
    print(f"Bucket: {config.bucket_name}")
    print(f"Format: {config.archive_format}")
    print(f"Purge bucket first: {'yes' if config.purge_bucket else 'no'}")
    print(f"Upload mode: {'streaming' if config.streaming_upload else 'single request'}")
    print("=" * 80)

    result = run_backup(config, client)

    # Summary
    print("\n" + "=" * 80)
    print("📊 SUMMARY")
    print("=" * 80)
    print(f"✓ Files archived: {result.file_count}")
    print(f"✓ Uploaded: s3://{config.bucket_name}/{result.object_key} ({result.archive_size} bytes)")
    if config.purge_bucket:
        print(f"🗑️  Objects deleted before upload: {result.deleted_objects}")
    if not result.local_cleanup_ok:
        print(f"⚠️  Local archive left behind: {result.archive_path}")
    print("\n✅ Done!")


def handle_archive_command(args):
    """Handle the 'archive' subcommand (local archive only, no upload)."""
    vault_path = Path(resolve_path(args.vault_path))

    if not vault_path.is_dir():
        raise ConfigError(f"Vault path does not exist: {vault_path}")

    if args.dry_run:
        print(f"🔍 Files that would be archived from {vault_path}:")
        print("-" * 80)
        count = 0
        for _, arcname in iter_vault_files(vault_path):
            print(f"  {arcname}")
            count += 1
        print("-" * 80)
        print(f"📋 {count} file(s)")
        return

    output = args.output or backup_filename(args.format)
    create_vault_backup(vault_path, output, args.format)
    print(f"📦 Backup: {output}")


def handle_list_command(args):
    """Handle the 'list' subcommand."""
    config = load_config(args.env_file, args.config, {'bucket_name': args.bucket}, require_vault=False)
    client = StorageClientFactory.create_client(config)

    objects = client.list_objects()
    print(f"🪣 Bucket: {config.bucket_name}")
    print("-" * 80)
    for obj in objects:
        modified = obj.last_modified.strftime('%Y-%m-%d %H:%M:%S') if obj.last_modified else ''
        print(f"{modified:19}  {obj.size:>12}  {obj.key}")
    print("-" * 80)
    print(f"📋 {len(objects)} object(s)")


def add_config_arguments(parser):
    """Add the options shared by commands that talk to the bucket."""
    parser.add_argument('--env-file', help='Path to .env file (default: .env in the current directory)')
    parser.add_argument('--config', help='Optional YAML settings file')
    parser.add_argument('--bucket', help='Bucket name (overrides AWS_S3_BUCKET_NAME)')


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description='Obsidian Vault Backup',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Back up the vault from OBSIDIAN_VAULT_PATH as tar.gz, replacing the bucket contents
  python obsidian_backup.py backup

  # Back up as zip without deleting existing backups
  python obsidian_backup.py backup --format zip

  # Create a local archive only
  python obsidian_backup.py archive ~/vault

  # Show which files would be archived
  python obsidian_backup.py archive ~/vault --dry-run

  # List objects in the bucket
  python obsidian_backup.py list

Environment Variables (read from .env if present):
  AWS_S3_BUCKET_NAME       Target bucket
  OBSIDIAN_VAULT_PATH      Vault directory (a leading ~/ is expanded)
  AWS_REGION               Bucket region
  AWS_ACCESS_KEY           Access key ID
  AWS_SECRET_KEY           Secret access key
  AWS_ENDPOINT_URL         Endpoint for S3-compatible storage (optional)
  OBSIDIAN_BACKUP_FORMAT   tar.gz or zip (default: tar.gz)
  OBSIDIAN_BACKUP_PURGE    Delete bucket contents before upload (default: yes for tar.gz)
  OBSIDIAN_BACKUP_DIR      Directory for the temporary archive (default: .)
        """
    )

    subparsers = parser.add_subparsers(dest='command', required=True, help='Available commands')

    # 'backup' subcommand
    backup_parser = subparsers.add_parser(
        'backup',
        help='Archive the vault and upload it to the bucket',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    add_config_arguments(backup_parser)
    backup_parser.add_argument('--vault', help='Vault path (overrides OBSIDIAN_VAULT_PATH)')
    backup_parser.add_argument(
        '--format',
        choices=list(ARCHIVE_FORMATS),
        help='Archive format (default: tar.gz)'
    )
    backup_parser.add_argument(
        '--purge',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Delete every object in the bucket before uploading (default: on for tar.gz, off for zip)'
    )
    backup_parser.add_argument('--output-dir', help='Directory for the temporary archive')
    backup_parser.add_argument(
        '--streaming-upload',
        action='store_true',
        help='Stream the archive with a multipart upload instead of one in-memory request'
    )

    # 'archive' subcommand
    archive_parser = subparsers.add_parser(
        'archive',
        help='Create a local archive of the vault without uploading',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    archive_parser.add_argument('vault_path', help='Path to Obsidian vault')
    archive_parser.add_argument(
        'output',
        nargs='?',
        help='Archive filename (default: timestamped name in the current directory)'
    )
    archive_parser.add_argument(
        '--format',
        choices=list(ARCHIVE_FORMATS),
        default='tar.gz',
        help='Archive format (default: tar.gz)'
    )
    archive_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='List files that would be archived without writing anything'
    )

    # 'list' subcommand
    list_parser = subparsers.add_parser(
        'list',
        help='List objects in the bucket',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    add_config_arguments(list_parser)

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Route to appropriate handler
    try:
        if args.command == 'backup':
            handle_backup_command(args)
        elif args.command == 'archive':
            handle_archive_command(args)
        elif args.command == 'list':
            handle_list_command(args)
    except BackupError as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
