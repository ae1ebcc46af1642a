import logging
import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from typing import BinaryIO
from tubely.core.config import Settings
from tubely.core.errors import PresignError, StorageUploadError
from tubely.platform.ports.object_storage import ObjectStoragePort

log = logging.getLogger("storage.s3")

class S3Storage(ObjectStoragePort):
    def __init__(self, settings: Settings, client=None):
        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                region_name=settings.S3_REGION,
            )
            client = session.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                config=Config(signature_version="s3v4"),
            )
        self.s3 = client

    def put_object(self, bucket: str, key: str, body: BinaryIO, content_type: str) -> None:
        try:
            self.s3.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            raise StorageUploadError(f"put_object s3://{bucket}/{key} failed: {e}") from e
        log.info(f"stored s3://{bucket}/{key} ({content_type})")

    def presign_download(self, bucket: str, key: str, expires_seconds: int) -> str:
        try:
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise PresignError(f"couldn't presign s3://{bucket}/{key}: {e}") from e
