"""Shared pytest fixtures for Obsidian Vault Backup tests."""

import pytest
from pathlib import Path

from lib.config import ENV_VARS, BackupConfig
from lib.storage.base import ObjectStorageClient, StorageObject


class InMemoryStorageClient(ObjectStorageClient):
    """Storage client that keeps objects in a dict, for exercising the pipeline."""

    def __init__(self, bucket='test-bucket', objects=None):
        super().__init__(bucket)
        self.objects = dict(objects or {})
        self.calls = []

    def list_objects(self):
        self.calls.append('list_objects')
        return [StorageObject(key=key, size=len(body)) for key, body in sorted(self.objects.items())]

    def delete_all_objects(self):
        self.calls.append('delete_all_objects')
        count = len(self.objects)
        self.objects.clear()
        return count

    def put_object(self, key, body):
        self.calls.append('put_object')
        self.objects[key] = bytes(body)

    def upload_file(self, file_path, key):
        self.calls.append('upload_file')
        self.objects[key] = Path(file_path).read_bytes()


@pytest.fixture
def temp_vault(tmp_path):
    """Create temporary vault with a few notes and an attachment."""
    vault = tmp_path / "test_vault"
    vault.mkdir()

    (vault / "notes").mkdir()
    (vault / "notes" / "a.md").write_text("hello")
    (vault / "notes" / "b.md").write_text("world")
    (vault / ".obsidian").mkdir()
    (vault / ".obsidian" / "app.json").write_text('{"theme": "dark"}')
    (vault / "attachments").mkdir()
    (vault / "attachments" / "image.png").write_bytes(b'\x89PNG fake image data')

    return vault


@pytest.fixture
def storage_client():
    """In-memory storage client holding three existing objects."""
    return InMemoryStorageClient(objects={'x': b'1', 'y': b'22', 'z': b'333'})


@pytest.fixture
def backup_config(temp_vault, tmp_path):
    """Backup configuration pointing at the temporary vault."""
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    return BackupConfig(
        bucket_name='test-bucket',
        vault_path=temp_vault,
        region='us-east-1',
        access_key='test_access_key',
        secret_key='test_secret_key',
        archive_format='tar.gz',
        purge_bucket=True,
        output_dir=output_dir,
    )


@pytest.fixture
def mock_env_vars(temp_vault):
    """Mock environment variables for a backup run."""
    return {
        'AWS_S3_BUCKET_NAME': 'env-bucket',
        'OBSIDIAN_VAULT_PATH': str(temp_vault),
        'AWS_REGION': 'eu-west-1',
        'AWS_ACCESS_KEY': 'test_access_key',
        'AWS_SECRET_KEY': 'test_secret_key',
    }


@pytest.fixture
def clear_env_vars(monkeypatch, tmp_path):
    """Clear all backup-related environment variables and any .env in the cwd."""
    # setenv first so monkeypatch also removes values that load_dotenv adds later
    for key in ENV_VARS:
        monkeypatch.setenv(key, '')
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def set_mock_env(clear_env_vars, mock_env_vars, monkeypatch):
    """Set mock environment variables."""
    for key, value in mock_env_vars.items():
        monkeypatch.setenv(key, value)
    return mock_env_vars
