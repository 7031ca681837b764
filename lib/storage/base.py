"""Base interface for object storage clients."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional


@dataclass
class StorageObject:
    """Metadata for one object in a bucket."""
    key: str
    size: int
    last_modified: Optional[datetime] = None


class ObjectStorageClient(ABC):
    """Abstract base class for object storage clients bound to one bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    def list_objects(self) -> List[StorageObject]:
        """
        List every object in the bucket.

        Returns:
            List of StorageObject entries
        """
        pass

    @abstractmethod
    def delete_all_objects(self) -> int:
        """
        Delete every object currently stored in the bucket.

        Returns:
            Number of objects deleted
        """
        pass

    @abstractmethod
    def put_object(self, key: str, body: bytes) -> None:
        """
        Store a single object from an in-memory buffer.

        Args:
            key: Object key
            body: Full object content
        """
        pass

    @abstractmethod
    def upload_file(self, file_path: Path, key: str) -> None:
        """
        Stream a local file to the bucket without buffering it in memory.

        Args:
            file_path: Local file to upload
            key: Object key
        """
        pass
