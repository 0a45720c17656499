"""Metastore client protocol and an AWS Glue Data Catalog implementation.

Provides:
- MetastoreClient: the calls the replica lifecycle code needs
- GlueMetastoreClient: the same calls against the Glue Data Catalog
"""

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from hive_replica.errors import MetastoreError, NoSuchObjectError
from hive_replica.models import TableHandle

logger = logging.getLogger(__name__)

# Fields of a Glue GetTable response that UpdateTable accepts in TableInput.
TABLE_INPUT_KEYS = (
    "Name",
    "Description",
    "Owner",
    "LastAccessTime",
    "LastAnalyzedTime",
    "Retention",
    "StorageDescriptor",
    "PartitionKeys",
    "ViewOriginalText",
    "ViewExpandedText",
    "TableType",
    "Parameters",
    "TargetTable",
)


@runtime_checkable
class MetastoreClient(Protocol):
    """Protocol for the metastore calls used on replica tables.

    The client is owned by the caller, who opens it before and closes it
    after a call into this package.
    """

    def get_table(self, database_name: str, table_name: str) -> TableHandle:
        """Raises NoSuchObjectError if the table is absent, MetastoreError on other failures."""
        ...

    def alter_table(self, database_name: str, table_name: str, new_table: TableHandle) -> None:
        ...

    def drop_table(
        self,
        database_name: str,
        table_name: str,
        delete_data: bool = False,
        ignore_unknown: bool = True,
    ) -> None:
        ...

    def list_partitions(self, database_name: str, table_name: str, max_parts: int = -1) -> list[dict[str, Any]]:
        """Return partitions as dicts with "values" and "location". max_parts < 0 means all."""
        ...


def get_glue_client(region: str = "us-east-1") -> Any:
    """
    Create a boto3 Glue client.

    Args:
        region: AWS region for the Glue client.

    Returns:
        Configured boto3 Glue client.
    """
    return boto3.client("glue", region_name=region)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def table_from_glue(database_name: str, table: dict[str, Any]) -> TableHandle:
    """Convert a Glue table definition into a TableHandle."""
    storage = table.get("StorageDescriptor") or {}
    return TableHandle(
        database=table.get("DatabaseName", database_name),
        name=table["Name"],
        location=storage.get("Location", ""),
        partition_keys=[pk["Name"] for pk in table.get("PartitionKeys", [])],
        parameters=dict(table.get("Parameters") or {}),
        raw=table,
    )


def table_input_from(table: TableHandle) -> dict[str, Any]:
    """Build an UpdateTable TableInput from a TableHandle, using its parameters."""
    raw = table.raw or {}
    table_input = {key: raw[key] for key in TABLE_INPUT_KEYS if key in raw}
    table_input["Name"] = table.name
    table_input["Parameters"] = dict(table.parameters)
    if "StorageDescriptor" not in table_input:
        table_input["StorageDescriptor"] = {"Location": table.location}
    if "PartitionKeys" not in table_input:
        table_input["PartitionKeys"] = [{"Name": key, "Type": "string"} for key in table.partition_keys]
    return table_input


class GlueMetastoreClient:
    """MetastoreClient backed by the AWS Glue Data Catalog.

    Args:
        glue_client: boto3 Glue client. Defaults to one for region.
        region: AWS region used when glue_client is not given.
        catalog_id: Optional Glue catalog (AWS account) id.
    """

    def __init__(self, glue_client: Any = None, region: str = "us-east-1", catalog_id: Optional[str] = None):
        self.glue_client = glue_client or get_glue_client(region)
        self.catalog_id = catalog_id

    def _catalog_args(self) -> dict[str, str]:
        return {"CatalogId": self.catalog_id} if self.catalog_id else {}

    def get_table(self, database_name: str, table_name: str) -> TableHandle:
        try:
            response = self.glue_client.get_table(
                DatabaseName=database_name, Name=table_name, **self._catalog_args()
            )
        except ClientError as e:
            if _error_code(e) == "EntityNotFoundException":
                raise NoSuchObjectError(f"Table {database_name}.{table_name} not found") from e
            raise MetastoreError(f"Could not get table {database_name}.{table_name}: {e}") from e
        except BotoCoreError as e:
            raise MetastoreError(f"Could not get table {database_name}.{table_name}: {e}") from e
        return table_from_glue(database_name, response["Table"])

    def alter_table(self, database_name: str, table_name: str, new_table: TableHandle) -> None:
        try:
            self.glue_client.update_table(
                DatabaseName=database_name,
                TableInput=table_input_from(new_table),
                **self._catalog_args(),
            )
        except ClientError as e:
            if _error_code(e) == "EntityNotFoundException":
                raise NoSuchObjectError(f"Table {database_name}.{table_name} not found") from e
            raise MetastoreError(f"Could not alter table {database_name}.{table_name}: {e}") from e
        except BotoCoreError as e:
            raise MetastoreError(f"Could not alter table {database_name}.{table_name}: {e}") from e

    def drop_table(
        self,
        database_name: str,
        table_name: str,
        delete_data: bool = False,
        ignore_unknown: bool = True,
    ) -> None:
        if delete_data:
            # Glue only holds metadata.
            logger.warning(f"Glue does not delete table data; data for {database_name}.{table_name} is left in place")
        try:
            self.glue_client.delete_table(DatabaseName=database_name, Name=table_name, **self._catalog_args())
        except ClientError as e:
            if _error_code(e) == "EntityNotFoundException":
                if ignore_unknown:
                    logger.debug(f"Table {database_name}.{table_name} already absent")
                    return
                raise NoSuchObjectError(f"Table {database_name}.{table_name} not found") from e
            raise MetastoreError(f"Could not drop table {database_name}.{table_name}: {e}") from e
        except BotoCoreError as e:
            raise MetastoreError(f"Could not drop table {database_name}.{table_name}: {e}") from e

    def list_partitions(self, database_name: str, table_name: str, max_parts: int = -1) -> list[dict[str, Any]]:
        partitions: list[dict[str, Any]] = []
        try:
            paginator = self.glue_client.get_paginator("get_partitions")
            for page in paginator.paginate(DatabaseName=database_name, TableName=table_name, **self._catalog_args()):
                for partition in page.get("Partitions", []):
                    if 0 <= max_parts <= len(partitions):
                        return partitions
                    partitions.append(
                        {
                            "values": partition.get("Values", []),
                            "location": partition.get("StorageDescriptor", {}).get("Location", ""),
                        }
                    )
        except ClientError as e:
            if _error_code(e) == "EntityNotFoundException":
                raise NoSuchObjectError(f"Table {database_name}.{table_name} not found") from e
            raise MetastoreError(f"Could not list partitions of {database_name}.{table_name}: {e}") from e
        except BotoCoreError as e:
            raise MetastoreError(f"Could not list partitions of {database_name}.{table_name}: {e}") from e
        return partitions
