"""
hive_replica - Replica-side lifecycle and data movement for Hive table replication.

Tear down stale replica tables and their data:
    from hive_replica import DropTableService, GlueMetastoreClient, TableReplication, default_router

Build region-correct, credentialed S3 clients:
    from hive_replica import S3ClientFactory, CopierOptions, Security

Apply per-run table parameter overrides:
    from hive_replica import TableParametersTransformation, ReplicationStart
"""

from hive_replica.config import CopierOptions, Security, TableReplication, TableReplications, security_from_env
from hive_replica.credentials import AssumeRoleCredentialProvider, CredentialChain, CredentialChainBuilder
from hive_replica.data import DataManipulationClient, HadoopDataManipulationClient, S3DataManipulationClient
from hive_replica.drop_table import DropTableService
from hive_replica.errors import (
    DataDeletionError,
    HiveReplicaError,
    MetastoreError,
    NoSuchObjectError,
    RegionResolutionError,
    SchemeResolutionError,
    UnsupportedDeletionError,
)
from hive_replica.metastore import GlueMetastoreClient, MetastoreClient
from hive_replica.models import DeletionResult, DeletionSummary, TableHandle
from hive_replica.routing import (
    ClientResolver,
    DataManipulationClientFactory,
    HadoopDataManipulationClientFactory,
    PathClientResolver,
    S3MapreduceDataManipulationClientFactory,
    S3S3DataManipulationClientFactory,
    SchemeRouter,
    default_router,
)
from hive_replica.s3 import S3ClientFactory, StorageRegionResolver
from hive_replica.transformation import (
    ReplicationFailure,
    ReplicationStart,
    ReplicationSuccess,
    TableParametersTransformation,
    TransformationContext,
)

__all__ = [
    # Teardown
    "DropTableService",
    "MetastoreClient",
    "GlueMetastoreClient",
    "TableHandle",
    "DeletionResult",
    "DeletionSummary",
    # Data movement routing
    "DataManipulationClient",
    "DataManipulationClientFactory",
    "S3DataManipulationClient",
    "HadoopDataManipulationClient",
    "S3S3DataManipulationClientFactory",
    "HadoopDataManipulationClientFactory",
    "S3MapreduceDataManipulationClientFactory",
    "SchemeRouter",
    "PathClientResolver",
    "ClientResolver",
    "default_router",
    # S3 clients
    "S3ClientFactory",
    "StorageRegionResolver",
    "CredentialChain",
    "CredentialChainBuilder",
    "AssumeRoleCredentialProvider",
    # Configuration
    "CopierOptions",
    "Security",
    "TableReplication",
    "TableReplications",
    "security_from_env",
    # Transformations
    "TableParametersTransformation",
    "TransformationContext",
    "ReplicationStart",
    "ReplicationSuccess",
    "ReplicationFailure",
    # Errors
    "HiveReplicaError",
    "MetastoreError",
    "NoSuchObjectError",
    "DataDeletionError",
    "UnsupportedDeletionError",
    "RegionResolutionError",
    "SchemeResolutionError",
]
__version__ = "0.1.0"
