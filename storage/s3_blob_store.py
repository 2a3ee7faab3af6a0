"""S3 blob store for event images and thumbnails."""
import logging
import os
import time
import uuid
from typing import Iterable, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from storage.backend import BackendConfig

logger = logging.getLogger(__name__)

IMAGES_FOLDER = 'event-images'
THUMBNAILS_FOLDER = 'event-thumbnails'


class S3BlobStore:
    """Upload and remove public event image objects."""

    def __init__(self, config: BackendConfig):
        """
        Initialize S3 client.

        Args:
            config: Remote backend settings
        """
        self.bucket_name = config.bucket_name
        self.region_name = config.region_name
        self.s3 = boto3.client(
            's3',
            region_name=config.region_name,
            endpoint_url=config.endpoint_url
        )
        self.public_base_url = (
            config.public_base_url
            or f"https://{config.bucket_name}.s3.{config.region_name}.amazonaws.com"
        ).rstrip('/')
        logger.info(f"Initialized S3BlobStore for bucket: {config.bucket_name}")

    def ensure_bucket(self) -> bool:
        """
        Create the bucket if it does not exist yet.

        Failures are logged and reported as False; the store keeps working
        against whatever bucket state exists.
        """
        try:
            self.s3.head_bucket(Bucket=self.bucket_name)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') not in ('404', 'NoSuchBucket'):
                logger.warning(f"Could not check bucket {self.bucket_name}: {e}")
                return False
        except BotoCoreError as e:
            logger.warning(f"Could not check bucket {self.bucket_name}: {e}")
            return False

        try:
            if self.region_name == 'us-east-1':
                self.s3.create_bucket(Bucket=self.bucket_name)
            else:
                self.s3.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={'LocationConstraint': self.region_name}
                )
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not create bucket {self.bucket_name}: {e}")
            return False

        logger.info(f"Created {self.bucket_name} bucket successfully")
        return True

    def upload(self, folder: str, filename: str, data: bytes,
               content_type: str = 'image/jpeg') -> Tuple[str, str]:
        """
        Upload a blob under a folder.

        Args:
            folder: Logical folder (event-images or event-thumbnails)
            filename: Original filename, used for the object name
            data: Blob bytes
            content_type: MIME type stored with the object

        Returns:
            Tuple of (object path, public URL)

        Raises:
            ClientError: If the upload is rejected
        """
        path = f"{folder}/{self._object_name(filename)}"
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=path,
                Body=data,
                ContentType=content_type
            )
        except ClientError as e:
            logger.error(f"Error uploading {path}: {e}")
            raise

        logger.info(f"Uploaded {len(data)} bytes to {path}")
        return path, self.public_url(path)

    def remove(self, paths: Iterable[str]) -> None:
        """
        Remove blobs by path.

        Raises:
            ClientError: If the delete request is rejected
        """
        objects = [{'Key': path} for path in paths if path]
        if not objects:
            return

        response = self.s3.delete_objects(
            Bucket=self.bucket_name,
            Delete={'Objects': objects, 'Quiet': True}
        )
        errors = response.get('Errors', [])
        if errors:
            raise ClientError(
                {'Error': {'Code': errors[0].get('Code', 'DeleteFailed'),
                           'Message': errors[0].get('Message', '')}},
                'DeleteObjects'
            )
        logger.info(f"Removed {len(objects)} blobs from {self.bucket_name}")

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    def path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Object path for a public URL produced by this store, else None."""
        prefix = self.public_base_url + '/'
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    @staticmethod
    def _object_name(filename: str) -> str:
        stem = os.path.splitext(os.path.basename(filename))[0] or 'image'
        safe_stem = ''.join(c if c.isalnum() or c in '-_' else '-' for c in stem)[:50]
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{safe_stem}.jpg"
