"""Tests for the Glue-backed metastore client."""

from unittest.mock import MagicMock

import pytest

from hive_replica.errors import MetastoreError, NoSuchObjectError
from hive_replica.metastore import GlueMetastoreClient, MetastoreClient, table_from_glue, table_input_from

from .conftest import client_error


def _glue_table(parameters=None, partition_keys=None):
    return {
        "Name": "events",
        "DatabaseName": "replica_db",
        "CreateTime": "2024-01-01T00:00:00Z",
        "TableType": "EXTERNAL_TABLE",
        "StorageDescriptor": {
            "Location": "s3://bucket/replica_db/events",
            "Columns": [{"Name": "id", "Type": "bigint"}],
        },
        "PartitionKeys": partition_keys or [],
        "Parameters": parameters or {},
    }


class TestTableConversion:
    def test_table_from_glue(self):
        table = table_from_glue(
            "replica_db",
            _glue_table({"EXTERNAL": "TRUE"}, [{"Name": "year", "Type": "string"}]),
        )

        assert table.qualified_name == "replica_db.events"
        assert table.location == "s3://bucket/replica_db/events"
        assert table.partition_keys == ["year"]
        assert table.is_external

    def test_table_input_drops_read_only_fields(self):
        table = table_from_glue("replica_db", _glue_table({"EXTERNAL": "TRUE", "x": "1"}))

        table_input = table_input_from(table.with_parameters({"EXTERNAL": "TRUE"}))

        assert table_input["Parameters"] == {"EXTERNAL": "TRUE"}
        assert "CreateTime" not in table_input
        assert "DatabaseName" not in table_input
        assert table_input["StorageDescriptor"]["Columns"] == [{"Name": "id", "Type": "bigint"}]


class TestGlueMetastoreClient:
    def test_implements_protocol(self):
        assert isinstance(GlueMetastoreClient(MagicMock()), MetastoreClient)

    def test_get_table(self):
        glue = MagicMock()
        glue.get_table.return_value = {"Table": _glue_table({"x": "1"})}

        table = GlueMetastoreClient(glue).get_table("replica_db", "events")

        glue.get_table.assert_called_once_with(DatabaseName="replica_db", Name="events")
        assert table.parameters == {"x": "1"}

    def test_get_table_with_catalog_id(self):
        glue = MagicMock()
        glue.get_table.return_value = {"Table": _glue_table()}

        GlueMetastoreClient(glue, catalog_id="123456789012").get_table("replica_db", "events")

        glue.get_table.assert_called_once_with(DatabaseName="replica_db", Name="events", CatalogId="123456789012")

    def test_get_missing_table(self):
        glue = MagicMock()
        glue.get_table.side_effect = client_error("EntityNotFoundException", "GetTable")

        with pytest.raises(NoSuchObjectError):
            GlueMetastoreClient(glue).get_table("replica_db", "events")

    def test_get_table_transport_failure(self):
        glue = MagicMock()
        glue.get_table.side_effect = client_error("InternalServiceException", "GetTable")

        with pytest.raises(MetastoreError) as exc_info:
            GlueMetastoreClient(glue).get_table("replica_db", "events")
        assert not isinstance(exc_info.value, NoSuchObjectError)

    def test_alter_table(self):
        glue = MagicMock()
        table = table_from_glue("replica_db", _glue_table({"x": "1"}))

        GlueMetastoreClient(glue).alter_table("replica_db", "events", table.with_parameters({}))

        kwargs = glue.update_table.call_args.kwargs
        assert kwargs["DatabaseName"] == "replica_db"
        assert kwargs["TableInput"]["Name"] == "events"
        assert kwargs["TableInput"]["Parameters"] == {}

    def test_alter_failure_raises(self):
        glue = MagicMock()
        glue.update_table.side_effect = client_error("AccessDeniedException", "UpdateTable")
        table = table_from_glue("replica_db", _glue_table())

        with pytest.raises(MetastoreError):
            GlueMetastoreClient(glue).alter_table("replica_db", "events", table)

    def test_drop_missing_table_ignored(self):
        glue = MagicMock()
        glue.delete_table.side_effect = client_error("EntityNotFoundException", "DeleteTable")

        GlueMetastoreClient(glue).drop_table("replica_db", "events", delete_data=False, ignore_unknown=True)

    def test_drop_missing_table_not_ignored(self):
        glue = MagicMock()
        glue.delete_table.side_effect = client_error("EntityNotFoundException", "DeleteTable")

        with pytest.raises(NoSuchObjectError):
            GlueMetastoreClient(glue).drop_table("replica_db", "events", ignore_unknown=False)

    def test_drop_table(self):
        glue = MagicMock()

        GlueMetastoreClient(glue).drop_table("replica_db", "events")

        glue.delete_table.assert_called_once_with(DatabaseName="replica_db", Name="events")

    def test_list_partitions(self):
        glue = MagicMock()
        glue.get_paginator.return_value.paginate.return_value = [
            {
                "Partitions": [
                    {"Values": ["2024"], "StorageDescriptor": {"Location": "s3://bucket/t/year=2024"}},
                    {"Values": ["2025"], "StorageDescriptor": {"Location": "s3://bucket/t/year=2025"}},
                ]
            },
            {"Partitions": [{"Values": ["2026"], "StorageDescriptor": {"Location": "s3://bucket/t/year=2026"}}]},
        ]

        client = GlueMetastoreClient(glue)

        assert [p["location"] for p in client.list_partitions("db", "t")] == [
            "s3://bucket/t/year=2024",
            "s3://bucket/t/year=2025",
            "s3://bucket/t/year=2026",
        ]
        assert client.list_partitions("db", "t", max_parts=2) == [
            {"values": ["2024"], "location": "s3://bucket/t/year=2024"},
            {"values": ["2025"], "location": "s3://bucket/t/year=2025"},
        ]
        glue.get_paginator.assert_called_with("get_partitions")

    def test_list_partitions_failure(self):
        glue = MagicMock()
        glue.get_paginator.return_value.paginate.side_effect = client_error("ThrottlingException", "GetPartitions")

        with pytest.raises(MetastoreError):
            GlueMetastoreClient(glue).list_partitions("db", "t")
