"""Data manipulation clients: delete the data behind a table or partition location."""

import logging
from typing import Any, Callable, Iterator, Protocol, runtime_checkable

import pyarrow as pa
from botocore.exceptions import BotoCoreError, ClientError
from pyarrow import fs as pafs

from hive_replica.errors import DataDeletionError, UnsupportedDeletionError
from hive_replica.s3 import parse_s3_path

logger = logging.getLogger(__name__)

# S3 delete_objects accepts at most this many keys per request.
DELETE_BATCH_SIZE = 1000


@runtime_checkable
class DataManipulationClient(Protocol):
    """Protocol for clients that can delete data at a location."""

    def delete(self, location: str) -> bool:
        """Delete all data at location.

        Returns:
            True if anything was deleted, False if there was nothing to delete.

        Raises:
            DataDeletionError: On an IO failure (an OSError).
            UnsupportedDeletionError: If this client cannot delete at location.
        """
        ...


class S3DataManipulationClient:
    """Deletes S3 objects at a location and everything under it.

    Args:
        s3_client: boto3 S3 client, already bound to the right region and credentials.
    """

    def __init__(self, s3_client: Any):
        self.s3_client = s3_client

    def delete(self, location: str) -> bool:
        try:
            bucket, key = parse_s3_path(location.rstrip("/"))
        except ValueError as e:
            raise UnsupportedDeletionError(f"S3 client cannot delete non-S3 location {location}") from e

        deleted = 0
        errors: list[str] = []
        try:
            for batch in self._key_batches(bucket, key):
                deleted += self._delete_batch(bucket, batch, errors)
        except (ClientError, BotoCoreError) as e:
            raise DataDeletionError(location, str(e)) from e

        if errors:
            raise DataDeletionError(location, f"{len(errors)} delete failure(s): {errors[0]}")

        if deleted == 0:
            logger.debug(f"No objects deleted at {location}")
        else:
            logger.debug(f"Deleted {deleted} object(s) from {location}")
        return deleted > 0

    def _key_batches(self, bucket: str, key: str) -> Iterator[list[str]]:
        """Yield keys to delete, one listing page at a time.

        The location key itself is yielded first when it exists as an object,
        then everything under "key/". Siblings sharing a name prefix
        (part=1 vs part=10) are never listed.
        """
        if key and self._object_exists(bucket, key):
            yield [key]

        prefix = f"{key}/" if key else ""
        paginator = self.s3_client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": DELETE_BATCH_SIZE},
        )
        for page in pages:
            keys = [obj["Key"] for obj in page.get("Contents", [])]
            for i in range(0, len(keys), DELETE_BATCH_SIZE):
                yield keys[i : i + DELETE_BATCH_SIZE]

    def _object_exists(self, bucket: str, key: str) -> bool:
        # key sorts ahead of every longer key it prefixes.
        response = self.s3_client.list_objects_v2(Bucket=bucket, Prefix=key, MaxKeys=1)
        contents = response.get("Contents", [])
        return bool(contents) and contents[0]["Key"] == key

    def _delete_batch(self, bucket: str, batch: list[str], errors: list[str]) -> int:
        """Delete one batch of keys, appending any failures to errors.

        Returns:
            Number of objects deleted.
        """
        try:
            response = self.s3_client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": False},
            )
        except (ClientError, BotoCoreError) as e:
            message = f"batch of {len(batch)} key(s) starting at s3://{bucket}/{batch[0]}: {e}"
            logger.error(f"Failed to delete {message}")
            errors.append(message)
            return 0

        for error in response.get("Errors", []):
            message = f"s3://{bucket}/{error['Key']}: {error.get('Message', 'Unknown error')}"
            logger.error(f"Failed to delete {message}")
            errors.append(message)
        return len(response.get("Deleted", []))


class HadoopDataManipulationClient:
    """Deletes files and directories on HDFS or a local filesystem.

    Args:
        filesystem_factory: Maps a location URI to (filesystem, path).
            Defaults to pyarrow's FileSystem.from_uri.
    """

    def __init__(self, filesystem_factory: Callable[[str], tuple[Any, str]] = pafs.FileSystem.from_uri):
        self.filesystem_factory = filesystem_factory

    def delete(self, location: str) -> bool:
        try:
            filesystem, path = self.filesystem_factory(location)
        except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
            raise UnsupportedDeletionError(f"No filesystem available for location {location}: {e}") from e
        except OSError as e:
            raise DataDeletionError(location, str(e)) from e

        try:
            info = filesystem.get_file_info(path)
            if info.type == pafs.FileType.NotFound:
                logger.debug(f"Nothing to delete at {location}")
                return False
            if info.type == pafs.FileType.Directory:
                filesystem.delete_dir(path)
            else:
                filesystem.delete_file(path)
        except OSError as e:
            raise DataDeletionError(location, str(e)) from e
        return True
