"""Object storage clients for uploading vault backups."""

from .base import ObjectStorageClient, StorageObject
from .s3_client import S3StorageClient


class StorageClientFactory:
    """Factory for creating object storage clients."""

    @staticmethod
    def create_client(config) -> ObjectStorageClient:
        """
        Create a storage client for the configured bucket.

        Args:
            config: BackupConfig with bucket, region, credentials and endpoint

        Returns:
            S3StorageClient bound to config.bucket_name

        Raises:
            StorageAPIError: If the underlying SDK client cannot be created
        """
        return S3StorageClient(
            config.bucket_name,
            region=config.region,
            access_key=config.access_key,
            secret_key=config.secret_key,
            endpoint_url=config.endpoint_url,
        )


__all__ = ['ObjectStorageClient', 'StorageObject', 'StorageClientFactory', 'S3StorageClient']
