"""Configuration objects consumed by hive_replica.

Loading these from files is the caller's job; this module only defines their
shape, defaults and the parsing of free-form copier option mappings.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

ASSUME_ROLE = "assume-role"
ASSUME_ROLE_CREDENTIAL_DURATION = "assume-role-credential-duration"
MAX_CONNECTIONS = "s3-client-max-connections"
S3_ENDPOINT_URI = "s3-endpoint-uri"
CONNECT_TIMEOUT = "s3-client-connect-timeout"
READ_TIMEOUT = "s3-client-read-timeout"

DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION = 12 * 60 * 60
DEFAULT_MAX_CONNECTIONS = 50
DEFAULT_CONNECT_TIMEOUT = 60
DEFAULT_READ_TIMEOUT = 60


@dataclass
class Security:
    """Security settings shared by all replications.

    Attributes:
        credential_provider: Path or file:// URI of an AWS shared credentials
            file to read keys from. None means no secret store is configured.
        credential_profile: Profile to read inside that file.
    """

    credential_provider: Optional[str] = None
    credential_profile: str = "default"

    @property
    def credential_file(self) -> Optional[str]:
        """Local filesystem path of the credential provider, with any file:// prefix removed."""
        if self.credential_provider is None:
            return None
        if self.credential_provider.startswith("file://"):
            return self.credential_provider[len("file://"):]
        return self.credential_provider


def security_from_env() -> Security:
    """Build Security from HIVE_REPLICA_CREDENTIAL_PROVIDER / HIVE_REPLICA_CREDENTIAL_PROFILE."""
    return Security(
        credential_provider=os.environ.get("HIVE_REPLICA_CREDENTIAL_PROVIDER") or None,
        credential_profile=os.environ.get("HIVE_REPLICA_CREDENTIAL_PROFILE", "default"),
    )


@dataclass
class CopierOptions:
    """Per-replication options for building S3 clients."""

    assumed_role: Optional[str] = None
    assumed_role_credential_duration: int = DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    s3_endpoint: Optional[str] = None  # Endpoint for the region-agnostic client
    s3_endpoints: dict[str, str] = field(default_factory=dict)  # region -> endpoint
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    read_timeout: int = DEFAULT_READ_TIMEOUT

    def endpoint_for(self, region: Optional[str] = None) -> Optional[str]:
        """Return the explicit endpoint for a region, or the global one when region is None."""
        if region is None:
            return self.s3_endpoint
        return self.s3_endpoints.get(region)

    @classmethod
    def from_mapping(cls, options: Optional[dict[str, Any]]) -> "CopierOptions":
        """Parse a free-form copier options mapping.

        Recognised keys:
            assume-role, assume-role-credential-duration,
            s3-client-max-connections, s3-client-connect-timeout,
            s3-client-read-timeout, s3-endpoint-uri and
            s3-endpoint-uri.<region>.

        Unknown keys are ignored.

        Raises:
            ValueError: If a numeric option cannot be parsed.
        """
        options = options or {}
        endpoints = {
            key[len(S3_ENDPOINT_URI) + 1:]: str(value)
            for key, value in options.items()
            if key.startswith(S3_ENDPOINT_URI + ".") and value
        }
        return cls(
            assumed_role=options.get(ASSUME_ROLE) or None,
            assumed_role_credential_duration=_int_option(
                options, ASSUME_ROLE_CREDENTIAL_DURATION, DEFAULT_ASSUME_ROLE_CREDENTIAL_DURATION
            ),
            max_connections=_int_option(options, MAX_CONNECTIONS, DEFAULT_MAX_CONNECTIONS),
            s3_endpoint=options.get(S3_ENDPOINT_URI) or None,
            s3_endpoints=endpoints,
            connect_timeout=_int_option(options, CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
            read_timeout=_int_option(options, READ_TIMEOUT, DEFAULT_READ_TIMEOUT),
        )


def _int_option(options: dict[str, Any], key: str, default: int) -> int:
    value = options.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for copier option '{key}': {value!r}") from e


@dataclass
class TableReplication:
    """One source table to be replicated to one replica table."""

    source_database: str
    source_table: str
    replica_database: str
    replica_table: str
    source_location: Optional[str] = None
    transform_options: dict[str, Any] = field(default_factory=dict)
    copier_options: dict[str, Any] = field(default_factory=dict)

    @property
    def qualified_replica_name(self) -> str:
        return f"{self.replica_database}.{self.replica_table}"


@dataclass
class TableReplications:
    """The set of table replications for a run. Must not be empty."""

    table_replications: list[TableReplication]

    def __post_init__(self):
        if not self.table_replications:
            raise ValueError("At least one table replication must be configured")

    def __iter__(self):
        return iter(self.table_replications)

    def __len__(self) -> int:
        return len(self.table_replications)
