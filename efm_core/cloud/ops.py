#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Object store capability.

CloudStorageOps is the interface the sync engine and the materialize pipeline
depend on. S3CloudStorage implements it over a boto3 S3 client; every client
call runs in a worker thread so the event loop stays responsive.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import CLOUD_CONTENT_TYPE, MULTIPART_PART_SIZE, READ_CHUNK_SIZE
from ..errors import CloudError, OperationCancelled
from ..models.events import EventKind, ProgressEvent, ProgressSink, emit
from ..models.settings import CloudCredentials

logger = logging.getLogger(__name__)


class CloudStorageOps:
    """Interface of the object store capability."""

    async def upload_file(self, file_path: Path, cloud_key: str, progress: Optional[ProgressSink] = None) -> None:
        raise NotImplementedError

    async def download_file(
        self,
        cloud_key: str,
        destination: Path,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        raise NotImplementedError

    async def file_exists(self, cloud_key: str) -> bool:
        raise NotImplementedError


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove partial download %s: %s", path, e)


class S3CloudStorage(CloudStorageOps):

    def __init__(self, client, bucket: str, part_size: int = MULTIPART_PART_SIZE):
        self.client = client
        self.bucket = bucket
        self.part_size = part_size

    @classmethod
    def connect(cls, credentials: CloudCredentials, endpoint: str, region: str, bucket: str) -> "S3CloudStorage":
        """Create a client for an S3 compatible endpoint (an empty endpoint means AWS)."""
        try:
            client = boto3.client(
                "s3",
                endpoint_url=endpoint or None,
                region_name=region or None,
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
            )
        except (BotoCoreError, ValueError) as e:
            raise CloudError(f"Failed to create S3 client: {e}") from e
        logger.info("Connected to bucket %s at %s", bucket, endpoint or "AWS")
        return cls(client, bucket)

    async def upload_file(self, file_path: Path, cloud_key: str, progress: Optional[ProgressSink] = None) -> None:
        """Multipart upload of a local blob. Any failing part aborts the upload id."""
        try:
            mpu = await asyncio.to_thread(
                self.client.create_multipart_upload,
                Bucket=self.bucket, Key=cloud_key, ContentType=CLOUD_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as e:
            raise CloudError(f"Failed to start upload of {cloud_key}: {e}") from e
        upload_id = mpu["UploadId"]

        parts = []
        part_number = 1
        try:
            with open(file_path, "rb") as f:
                while True:
                    chunk = await asyncio.to_thread(f.read, self.part_size)
                    # an empty blob is still uploaded as a single empty part
                    if not chunk and part_number > 1:
                        break
                    response = await asyncio.to_thread(
                        self.client.upload_part,
                        Bucket=self.bucket, Key=cloud_key, PartNumber=part_number, UploadId=upload_id, Body=chunk,
                    )
                    parts.append({"ETag": response["ETag"], "PartNumber": part_number})
                    emit(progress, ProgressEvent(EventKind.PART_UPLOADED, key=cloud_key, part=part_number,
                                                 bytes_done=len(chunk)))
                    logger.debug("Uploaded part %d of %s", part_number, cloud_key)
                    part_number += 1
                    if len(chunk) < self.part_size:
                        break

            await asyncio.to_thread(
                self.client.complete_multipart_upload,
                Bucket=self.bucket, Key=cloud_key, UploadId=upload_id, MultipartUpload={"Parts": parts},
            )
        except (BotoCoreError, ClientError, OSError) as e:
            emit(progress, ProgressEvent(EventKind.PART_UPLOAD_FAILED, key=cloud_key, part=part_number,
                                         error=str(e)))
            logger.error("Multipart upload of %s failed at part %d: %s", cloud_key, part_number, e)
            try:
                await asyncio.to_thread(
                    self.client.abort_multipart_upload, Bucket=self.bucket, Key=cloud_key, UploadId=upload_id,
                )
            except (BotoCoreError, ClientError) as abort_error:
                logger.warning("Failed to abort upload %s of %s: %s", upload_id, cloud_key, abort_error)
            raise CloudError(f"Upload of {cloud_key} failed: {e}") from e

        logger.info("Uploaded %s in %d part(s)", cloud_key, len(parts))

    async def download_file(
        self,
        cloud_key: str,
        destination: Path,
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        """Stream an object to destination. A cancelled or failed download leaves no file behind."""
        destination = Path(destination)
        try:
            response = await asyncio.to_thread(self.client.get_object, Bucket=self.bucket, Key=cloud_key)
        except (BotoCoreError, ClientError) as e:
            raise CloudError(f"Failed to fetch {cloud_key}: {e}") from e

        total = response.get("ContentLength")
        emit(progress, ProgressEvent(EventKind.FILE_DOWNLOAD_STARTED, key=cloud_key, total_bytes=total))
        chunks = response["Body"].iter_chunks(chunk_size=READ_CHUNK_SIZE)
        done = 0
        try:
            with open(destination, "wb") as out:
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        raise OperationCancelled(f"Download of {cloud_key} cancelled")
                    chunk = await asyncio.to_thread(next, chunks, None)
                    if chunk is None:
                        break
                    out.write(chunk)
                    done += len(chunk)
                    emit(progress, ProgressEvent(EventKind.FILE_DOWNLOAD_PROGRESS, key=cloud_key,
                                                 bytes_done=done, total_bytes=total))
        except OperationCancelled:
            _remove_partial(destination)
            raise
        except (BotoCoreError, ClientError, OSError) as e:
            _remove_partial(destination)
            raise CloudError(f"Download of {cloud_key} failed: {e}") from e
        return done

    async def file_exists(self, cloud_key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=cloud_key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise CloudError(f"Failed to check {cloud_key}: {e}") from e
        except BotoCoreError as e:
            raise CloudError(f"Failed to check {cloud_key}: {e}") from e
        return True
