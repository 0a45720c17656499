"""Pytest configuration and fixtures for hive_replica tests."""

from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from hive_replica.metastore import MetastoreClient
from hive_replica.models import TableHandle


def client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


@pytest.fixture
def make_table() -> Callable[..., TableHandle]:
    """Factory for replica TableHandle objects.

    Usage:
        table = make_table(partition_keys=["year"], parameters={"EXTERNAL": "TRUE"})
    """

    def _make(
        database: str = "replica_db",
        name: str = "replica_table",
        location: str = "s3://replica-bucket/replica_db/replica_table",
        partition_keys: Optional[list[str]] = None,
        parameters: Optional[dict[str, str]] = None,
    ) -> TableHandle:
        return TableHandle(
            database=database,
            name=name,
            location=location,
            partition_keys=partition_keys or [],
            parameters=parameters if parameters is not None else {},
        )

    return _make


@pytest.fixture
def metastore() -> MagicMock:
    """MagicMock constrained to the MetastoreClient protocol."""
    return MagicMock(spec=MetastoreClient)


@pytest.fixture
def data_client() -> MagicMock:
    """DataManipulationClient mock whose deletes succeed."""
    client = MagicMock()
    client.delete.return_value = True
    return client


@pytest.fixture
def client_resolver(data_client) -> MagicMock:
    """Resolver handing out data_client for every path."""
    resolver = MagicMock()
    resolver.client_for_path.return_value = data_client
    return resolver
