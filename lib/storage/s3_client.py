"""S3 client for AWS and S3-compatible storage (R2, MinIO)."""

from pathlib import Path
from typing import List, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from .base import ObjectStorageClient, StorageObject
from ..errors import StorageAPIError, StorageAuthError


AUTH_ERROR_CODES = {
    'AccessDenied',
    'InvalidAccessKeyId',
    'SignatureDoesNotMatch',
    'ExpiredToken',
    'InvalidToken',
}

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


class S3StorageClient(ObjectStorageClient):
    """S3 client implementation."""

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client=None
    ):
        """
        Initialize S3 client.

        Credentials are passed to boto3 only when both halves are given;
        otherwise boto3 falls back to its default credential chain.

        Args:
            bucket: Bucket name
            region: AWS region
            access_key: AWS access key ID
            secret_key: AWS secret access key
            endpoint_url: Endpoint for S3-compatible services
            client: Pre-built boto3 S3 client (used instead of creating one)
        """
        super().__init__(bucket)
        self.region = region
        self.endpoint_url = endpoint_url

        if client is not None:
            self.client = client
            return

        client_kwargs = {'region_name': region}
        if endpoint_url:
            client_kwargs['endpoint_url'] = endpoint_url
        if access_key and secret_key:
            client_kwargs['aws_access_key_id'] = access_key
            client_kwargs['aws_secret_access_key'] = secret_key

        try:
            self.client = boto3.client('s3', **client_kwargs)
        except BotoCoreError as e:
            raise StorageAPIError(f"Failed to create S3 client: {e}") from e

    def _translate_error(self, error: Exception, action: str) -> Exception:
        """Map a boto3 exception to a StorageAuthError or StorageAPIError."""
        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return StorageAuthError(f"No usable AWS credentials while trying to {action}: {error}")

        if isinstance(error, S3UploadFailedError):
            original = error.__cause__ or error.__context__
            if isinstance(original, ClientError):
                error = original

        if isinstance(error, ClientError):
            code = error.response.get('Error', {}).get('Code', 'Unknown')
            if code in AUTH_ERROR_CODES:
                return StorageAuthError(f"Access denied while trying to {action}: {error}")
            if code == 'NoSuchBucket':
                return StorageAPIError(f"Bucket '{self.bucket}' does not exist")

        return StorageAPIError(f"Failed to {action}: {error}")

    def list_objects(self) -> List[StorageObject]:
        """List all objects in the bucket, following pagination."""
        objects = []
        try:
            paginator = self.client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket):
                for item in page.get('Contents', []):
                    objects.append(StorageObject(
                        key=item['Key'],
                        size=item['Size'],
                        last_modified=item.get('LastModified'),
                    ))
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, f"list objects in bucket '{self.bucket}'") from e
        return objects

    def delete_all_objects(self) -> int:
        """Delete every object in the bucket in batches."""
        keys = [obj.key for obj in self.list_objects()]

        deleted = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={
                        'Objects': [{'Key': key} for key in batch],
                        'Quiet': True,
                    },
                )
            except (BotoCoreError, ClientError) as e:
                raise self._translate_error(e, f"delete objects from bucket '{self.bucket}'") from e

            errors = response.get('Errors', [])
            if errors:
                first = errors[0]
                raise StorageAPIError(
                    f"Unable to delete {len(errors)} object(s) from bucket '{self.bucket}', "
                    f"first failure: {first.get('Key')} ({first.get('Code')}: {first.get('Message')})"
                )
            deleted += len(batch)

        return deleted

    def put_object(self, key: str, body: bytes) -> None:
        """Upload a single object from memory."""
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body)
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, f"upload {key}") from e

    def upload_file(self, file_path: Path, key: str) -> None:
        """Upload a file using boto3's managed (multipart) transfer."""
        try:
            self.client.upload_file(str(file_path), self.bucket, key)
        except (BotoCoreError, ClientError, S3UploadFailedError) as e:
            raise self._translate_error(e, f"upload {key}") from e
