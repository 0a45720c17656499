"""Routing of data manipulation requests to client factories by storage scheme.

Factories are held in an explicit precedence order: the first factory whose
supports_schemes() accepts the (source scheme, replica scheme) pair wins.
The last factory is the broad fallback for any non-S3 source replicated to S3.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlparse

from hive_replica.config import CopierOptions, TableReplication
from hive_replica.data import DataManipulationClient, HadoopDataManipulationClient, S3DataManipulationClient
from hive_replica.errors import SchemeResolutionError
from hive_replica.s3 import S3ClientFactory, is_s3_scheme

logger = logging.getLogger(__name__)


def scheme_of(location: Optional[str]) -> str:
    """Return the lower-cased scheme of a location, or "" if it has none."""
    if not location:
        return ""
    return urlparse(location).scheme.lower()


@runtime_checkable
class DataManipulationClientFactory(Protocol):
    """Protocol for factories of DataManipulationClient instances."""

    def supports_schemes(self, source_scheme: str, replica_scheme: str) -> bool:
        ...

    def new_instance(self, path: str, copier_options: CopierOptions) -> DataManipulationClient:
        ...


class S3S3DataManipulationClientFactory:
    """S3 to S3 replications. Builds a client bound to the region of path's bucket."""

    def __init__(self, s3_client_factory: S3ClientFactory):
        self.s3_client_factory = s3_client_factory

    def supports_schemes(self, source_scheme: str, replica_scheme: str) -> bool:
        return is_s3_scheme(source_scheme) and is_s3_scheme(replica_scheme)

    def new_instance(self, path: str, copier_options: CopierOptions) -> DataManipulationClient:
        return S3DataManipulationClient(self.s3_client_factory.new_instance(path, copier_options))


class HadoopDataManipulationClientFactory:
    """Replications where neither side is on S3 (HDFS, local filesystems)."""

    def supports_schemes(self, source_scheme: str, replica_scheme: str) -> bool:
        return not is_s3_scheme(source_scheme) and not is_s3_scheme(replica_scheme)

    def new_instance(self, path: str, copier_options: CopierOptions) -> DataManipulationClient:
        return HadoopDataManipulationClient()


class S3MapreduceDataManipulationClientFactory:
    """Fallback for any non-S3 source replicated to S3.

    The client is region-agnostic, so path is not used to build it.
    """

    def __init__(self, s3_client_factory: S3ClientFactory):
        self.s3_client_factory = s3_client_factory

    def supports_schemes(self, source_scheme: str, replica_scheme: str) -> bool:
        return not is_s3_scheme(source_scheme) and is_s3_scheme(replica_scheme)

    def new_instance(self, path: str, copier_options: CopierOptions) -> DataManipulationClient:
        return S3DataManipulationClient(self.s3_client_factory.new_global_instance(copier_options))


class SchemeRouter:
    """Ordered registry of DataManipulationClientFactory instances.

    Args:
        factories: Factories in precedence order, highest first. The last one
            should be the broadest fallback.
    """

    def __init__(self, factories: list[DataManipulationClientFactory]):
        self.factories = list(factories)

    def resolve(self, source_scheme: str, replica_scheme: str) -> DataManipulationClientFactory:
        """Return the first factory supporting the scheme pair.

        Raises:
            SchemeResolutionError: If no factory supports the pair.
        """
        for factory in self.factories:
            if factory.supports_schemes(source_scheme, replica_scheme):
                logger.debug(
                    f"Selected {type(factory).__name__} for source scheme '{source_scheme}' "
                    f"and replica scheme '{replica_scheme}'"
                )
                return factory
        raise SchemeResolutionError(source_scheme, replica_scheme)

    def client_for_path(
        self,
        path: str,
        source_location: Optional[str],
        copier_options: Optional[CopierOptions] = None,
    ) -> DataManipulationClient:
        """Build a client able to manipulate data at path.

        Only the selected factory's new_instance() is called, as it may make
        blocking network calls.
        """
        factory = self.resolve(scheme_of(source_location), scheme_of(path))
        return factory.new_instance(path, copier_options or CopierOptions())


def default_router(s3_client_factory: Optional[S3ClientFactory] = None) -> SchemeRouter:
    """Build the standard router: S3->S3, then non-S3->non-S3, then the non-S3->S3 fallback."""
    s3_client_factory = s3_client_factory or S3ClientFactory()
    return SchemeRouter(
        [
            S3S3DataManipulationClientFactory(s3_client_factory),
            HadoopDataManipulationClientFactory(),
            S3MapreduceDataManipulationClientFactory(s3_client_factory),
        ]
    )


@runtime_checkable
class ClientResolver(Protocol):
    """Protocol for objects handing out a DataManipulationClient per path."""

    def client_for_path(self, path: str) -> DataManipulationClient:
        ...


@dataclass
class PathClientResolver:
    """A SchemeRouter bound to one replication's source location and copier options."""

    router: SchemeRouter
    source_location: Optional[str] = None
    copier_options: CopierOptions = field(default_factory=CopierOptions)

    @classmethod
    def for_replication(cls, router: SchemeRouter, replication: TableReplication) -> "PathClientResolver":
        """Bind router to a configured replication, parsing its copier options.

        Raises:
            ValueError: If a numeric copier option cannot be parsed.
        """
        return cls(
            router=router,
            source_location=replication.source_location,
            copier_options=CopierOptions.from_mapping(replication.copier_options),
        )

    def client_for_path(self, path: str) -> DataManipulationClient:
        return self.router.client_for_path(path, self.source_location, self.copier_options)
