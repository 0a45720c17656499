"""Exceptions raised by hive_replica.

Failures fall into two groups:
- Degradable: missing tables, partition listing failures, failed or
  unsupported deletes, bucket region lookups. These are logged and the
  operation carries on.
- Fatal: no data manipulation client for a scheme pair, or a failed
  metastore alter/drop. These propagate to the caller.
"""


class HiveReplicaError(Exception):
    """Base class for hive_replica errors."""


class MetastoreError(HiveReplicaError):
    """A metastore call failed (transport, permissions, bad request)."""


class NoSuchObjectError(MetastoreError):
    """The requested table or partition does not exist in the metastore."""


class DataDeletionError(HiveReplicaError, OSError):
    """Deleting data at a storage location failed."""

    def __init__(self, location: str, message: str):
        super().__init__(f"Could not delete data at {location}: {message}")
        self.location = location


class UnsupportedDeletionError(HiveReplicaError):
    """The client cannot delete data at the given location."""


class RegionResolutionError(HiveReplicaError):
    """The region of an S3 bucket could not be determined."""


class SchemeResolutionError(HiveReplicaError):
    """No data manipulation client factory supports a scheme pair."""

    def __init__(self, source_scheme: str, replica_scheme: str):
        super().__init__(
            f"No DataManipulationClientFactory found for source scheme "
            f"'{source_scheme}' and replica scheme '{replica_scheme}'"
        )
        self.source_scheme = source_scheme
        self.replica_scheme = replica_scheme
