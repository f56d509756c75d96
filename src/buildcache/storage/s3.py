"""S3-compatible object storage backend."""

import asyncio
import logging
from typing import AsyncIterator

import boto3
from botocore.exceptions import ClientError

from buildcache.config import S3Options
from buildcache.errors import ArtifactNotFound
from buildcache.storage.base import CHUNK_SIZE, SpooledBlobWriter

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def is_not_found(e: ClientError) -> bool:
    return e.response.get("Error", {}).get("Code", "") in NOT_FOUND_CODES


class S3Provider:
    """Store artifacts as objects in one bucket."""

    def __init__(self, bucket: str, options: S3Options, client=None):
        self.bucket = bucket
        if client is None:
            client_args = {
                "aws_access_key_id": options.access_key,
                "aws_secret_access_key": options.secret_key,
                "region_name": options.region,
                "endpoint_url": options.endpoint,
            }
            session = boto3.session.Session()
            client = session.client("s3", **{k: v for k, v in client_args.items() if v})
        self._client = client

    async def exists(self, artifact_path: str) -> bool:
        try:
            await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=artifact_path
            )
        except ClientError as e:
            if is_not_found(e):
                return False
            raise
        return True

    def create_read_stream(self, artifact_path: str) -> AsyncIterator[bytes]:
        return self._read(artifact_path)

    async def _read(self, artifact_path: str) -> AsyncIterator[bytes]:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=artifact_path
            )
        except ClientError as e:
            if is_not_found(e):
                raise ArtifactNotFound(artifact_path) from e
            raise

        body = response["Body"]
        try:
            while chunk := await asyncio.to_thread(body.read, CHUNK_SIZE):
                yield chunk
        finally:
            body.close()

    def create_write_stream(self, artifact_path: str) -> SpooledBlobWriter:
        def upload(fileobj) -> None:
            self._client.upload_fileobj(fileobj, self.bucket, artifact_path)

        return SpooledBlobWriter(upload)

    async def after_create_write_stream(self, artifact_path: str) -> None:
        pass
