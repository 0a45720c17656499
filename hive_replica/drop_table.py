"""Teardown of replica tables: metadata, and optionally the data behind it.

Before any drop the table parameters are reset, keeping only the EXTERNAL
marker when the table is external. Otherwise a metastore that owns the data
of managed tables would delete it on drop, racing with (or duplicating) the
explicit deletion done here. Drops never ask the metastore to delete data.

Data deletion is best effort: failed or unsupported deletes are logged and
the metadata drop still happens. Partition listing failures are treated as
"no partitions", which leaves partition data behind on transient metastore
errors; this is logged as a warning.
"""

import functools
import logging
from typing import Optional

from hive_replica.config import TableReplication, TableReplications
from hive_replica.data import DataManipulationClient
from hive_replica.errors import MetastoreError, NoSuchObjectError, UnsupportedDeletionError
from hive_replica.metastore import MetastoreClient
from hive_replica.models import (
    EXTERNAL_KEY,
    IS_EXTERNAL,
    DeletionResult,
    DeletionSummary,
    TableHandle,
    create_deletion_summary,
)
from hive_replica.parallel import run_parallel
from hive_replica.routing import ClientResolver, PathClientResolver, SchemeRouter

logger = logging.getLogger(__name__)


def normalized_parameters(table: TableHandle) -> dict[str, str]:
    """Parameters a table should carry just before it is dropped."""
    if table.is_external:
        return {EXTERNAL_KEY: IS_EXTERNAL}
    return {}


class DropTableService:
    """Drops replica tables, deleting their data first where asked.

    Args:
        max_workers: Upper bound on concurrent partition deletions. 1 deletes
            partitions sequentially.
    """

    def __init__(self, max_workers: int = 1):
        self.max_workers = max_workers

    def remove_table_params_and_drop(self, client: MetastoreClient, database_name: str, table_name: str) -> None:
        """Remove all parameters from a table, except the EXTERNAL marker, then drop it.

        No data is deleted. Does nothing if the table does not exist.
        """
        table = self._get_table(client, database_name, table_name)
        if table is not None:
            self._drop_table(client, table, database_name, table_name)

    def drop_table_and_data(
        self,
        client: MetastoreClient,
        database_name: str,
        table_name: str,
        client_resolver: ClientResolver,
    ) -> Optional[DeletionSummary]:
        """Delete a table's data, then drop the table.

        An unpartitioned table's data is deleted at the table location. A
        partitioned table's data is deleted at each partition location.

        Args:
            client: MetastoreClient for the replica metastore.
            database_name: Replica database.
            table_name: Replica table.
            client_resolver: Object with client_for_path(location) returning
                a DataManipulationClient, e.g. a PathClientResolver.

        Returns:
            DeletionSummary for a partitioned table whose partitions were
            processed, otherwise None.

        Raises:
            SchemeResolutionError: If no client can handle the table location.
            MetastoreError: If the table lookup, alter or drop fails.
        """
        logger.debug(f"Dropping table {database_name}.{table_name} and its data.")
        table = self._get_table(client, database_name, table_name)
        if table is None:
            return None

        summary = None
        if table.partition_key_count == 0:
            self._delete_data(client_resolver, table.location)
        else:
            partition_locations = self._get_partition_locations(client, database_name, table_name)
            if partition_locations:
                summary = self._delete_partition_data(client_resolver, table, partition_locations)
            else:
                logger.info("No partitions to delete.")

        self._drop_table(client, table, database_name, table_name)
        return summary

    def drop_replica_table_and_data(
        self,
        client: MetastoreClient,
        replication: TableReplication,
        router: SchemeRouter,
    ) -> Optional[DeletionSummary]:
        """drop_table_and_data() for the replica table of a configured replication.

        Data clients are routed on the replication's source location and built
        with its copier options.
        """
        client_resolver = PathClientResolver.for_replication(router, replication)
        return self.drop_table_and_data(
            client,
            replication.replica_database,
            replication.replica_table,
            client_resolver,
        )

    def drop_replica_tables_and_data(
        self,
        client: MetastoreClient,
        replications: TableReplications,
        router: SchemeRouter,
    ) -> dict[str, Optional[DeletionSummary]]:
        """Tear down every replica table of a run, in order.

        Returns:
            Partition deletion summaries keyed by qualified replica table name.
        """
        summaries: dict[str, Optional[DeletionSummary]] = {}
        for replication in replications:
            summaries[replication.qualified_replica_name] = self.drop_replica_table_and_data(
                client, replication, router
            )
        return summaries

    def _get_table(self, client: MetastoreClient, database_name: str, table_name: str) -> Optional[TableHandle]:
        try:
            return client.get_table(database_name, table_name)
        except NoSuchObjectError:
            logger.info(f"No replica table '{database_name}.{table_name}' found. Nothing to delete.")
            return None

    def _drop_table(self, client: MetastoreClient, table: TableHandle, database_name: str, table_name: str) -> None:
        if table.parameters:
            client.alter_table(database_name, table_name, table.with_parameters(normalized_parameters(table)))
        logger.info(f"Dropping table '{database_name}.{table_name}'.")
        client.drop_table(database_name, table_name, delete_data=False, ignore_unknown=True)

    def _delete_data(self, client_resolver: ClientResolver, replica_data_location: str) -> None:
        logger.info(f"Dropping table data from location: {replica_data_location}.")
        data_client = client_resolver.client_for_path(replica_data_location)
        try:
            data_deleted = data_client.delete(replica_data_location)
            logger.info(f"Data deleted: {data_deleted}.")
        except UnsupportedDeletionError as e:
            logger.info(f"Deleting replica table data is not supported at location: {replica_data_location}. {e}")
        except OSError as e:
            logger.warning(f"Could not drop replica table data at location: {replica_data_location}. {e}")

    def _delete_partition_data(
        self,
        client_resolver: ClientResolver,
        table: TableHandle,
        partition_locations: list[str],
    ) -> DeletionSummary:
        logger.info(f"Dropping partition data from base location: {table.location}.")
        data_client = client_resolver.client_for_path(table.location)

        results = run_parallel(
            functools.partial(_delete_location, data_client),
            partition_locations,
            max_workers=self.max_workers,
        )
        summary = create_deletion_summary(table.qualified_name, results)
        if summary.all_succeeded:
            logger.info(f"Deleted data for {summary.attempted} partition(s) of {table.qualified_name}.")
        else:
            logger.warning(str(summary))
        return summary

    def _get_partition_locations(self, client: MetastoreClient, database_name: str, table_name: str) -> list[str]:
        try:
            partitions = client.list_partitions(database_name, table_name, -1)
        except MetastoreError as e:
            logger.warning(
                f"Could not list partitions for {database_name}.{table_name}; "
                f"partition data will not be deleted. {e}"
            )
            return []
        return [partition["location"] for partition in partitions if partition.get("location")]


def _delete_location(data_client: DataManipulationClient, location: str) -> DeletionResult:
    try:
        deleted = data_client.delete(location)
    except UnsupportedDeletionError as e:
        logger.info(f"Deleting data is not supported at location: {location}. {e}")
        return DeletionResult(location=location, error=str(e), unsupported=True)
    except OSError as e:
        logger.error(f"Could not drop replica partition data at location: {location}. {e}")
        return DeletionResult(location=location, error=str(e))
    logger.debug(f"Attempted to delete data from location: {location}. Successful deletion = {deleted}.")
    return DeletionResult(location=location, deleted=deleted)
