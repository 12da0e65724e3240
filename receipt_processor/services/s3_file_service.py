"""S3FileService provides S3-backed blob storage for uploaded receipts."""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from receipt_processor.core.exceptions import StorageError
from receipt_processor.core.settings import Settings


class S3FileService:
    """Service for S3 file operations: upload, download, exists, ensure bucket."""

    def __init__(self, settings: Settings) -> None:
        """Initialize S3FileService. No request is sent until the first upload."""
        self.s3 = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
        )
        self.bucket = settings.s3_bucket
        self._bucket_ready = False

    def ensure_bucket(self) -> None:
        """Ensure the S3 bucket exists, create if not present. Checked once per instance."""
        if self._bucket_ready:
            return
        try:
            self.s3.head_bucket(Bucket=self.bucket)
        except ClientError:
            self.s3.create_bucket(Bucket=self.bucket)
        self._bucket_ready = True

    def upload_fileobj(self, key: str, data: bytes) -> str:
        """Upload bytes to S3 under the given key and return the object's location."""
        try:
            self.ensure_bucket()
            self.s3.put_object(Bucket=self.bucket, Key=str(key), Body=data)
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to upload {key} to bucket {self.bucket}: {exc}"
            raise StorageError(msg) from exc
        return f"s3://{self.bucket}/{key}"

    def download_fileobj(self, key: str) -> bytes:
        """Download an object from S3 by key."""
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=str(key))
            return obj["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to download {key} from bucket {self.bucket}: {exc}"
            raise StorageError(msg) from exc

    def file_exists(self, key: str) -> bool:
        """Check if an object exists in S3 by key."""
        try:
            self.s3.head_object(Bucket=self.bucket, Key=str(key))
        except ClientError:
            return False
        else:
            return True
