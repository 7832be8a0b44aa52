"""
S3 object store for participant uploads.
"""
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from typing import Optional
from urllib.parse import quote

from core.logger import logger


class S3ObjectStore:
    """Single-bucket S3 store. Objects are partitioned by profile id prefix."""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,  # For S3-compatible services (MinIO, etc.)
        auto_create_bucket: bool = True,
        client=None
    ):
        """
        Initialize S3 store.

        Args:
            bucket_name: Bucket holding all study uploads
            aws_access_key_id: AWS access key (or from env)
            aws_secret_access_key: AWS secret key (or from env)
            region_name: AWS region
            endpoint_url: Custom endpoint URL (for MinIO, etc.)
            auto_create_bucket: Create the bucket if it doesn't exist
            client: Pre-built boto3 client (tests)
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.auto_create_bucket = auto_create_bucket

        if client is None:
            client_kwargs = {"region_name": region_name}
            if aws_access_key_id:
                client_kwargs["aws_access_key_id"] = aws_access_key_id
            if aws_secret_access_key:
                client_kwargs["aws_secret_access_key"] = aws_secret_access_key
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **client_kwargs)
        self.s3_client = client

        self._ensure_bucket_exists()
        logger.info(f"S3 object store initialized (bucket: {bucket_name})")

    def _ensure_bucket_exists(self):
        """Ensure bucket exists, create if it doesn't."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.debug(f"Bucket {self.bucket_name} exists")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code not in ("404", "NoSuchBucket") or not self.auto_create_bucket:
                logger.error(f"Error checking bucket {self.bucket_name}: {e}")
                raise
            if self.region_name == "us-east-1":
                self.s3_client.create_bucket(Bucket=self.bucket_name)
            else:
                self.s3_client.create_bucket(
                    Bucket=self.bucket_name,
                    CreateBucketConfiguration={"LocationConstraint": self.region_name}
                )
            logger.info(f"Created bucket: {self.bucket_name}")

    def put_object(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Write an object. Callers pass unique keys; existing keys are not checked.

        Returns:
            The object key
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="private, max-age=3600",
            )
            logger.info(f"Uploaded object to S3: s3://{self.bucket_name}/{key}")
            return key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload object to S3: {e}")
            raise

    def get_object(self, key: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to read object {key} from S3: {e}")
            raise

    def delete_object(self, key: str) -> bool:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            logger.info(f"Deleted object from S3: {self.bucket_name}/{key}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete object from S3: {e}")
            raise

    def get_public_url(self, key: str) -> str:
        """Permanent URL. Only resolvable if the bucket is public; uploads are served signed."""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quote(key)}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{quote(key)}"

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        """
        Generate a presigned URL for temporary access.

        Args:
            key: Object key
            expires_in: URL expiration time in seconds (default 1 hour)

        Returns:
            Presigned URL
        """
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL: {e}")
            raise
