"""Data models for hive_replica package."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

EXTERNAL_KEY = "EXTERNAL"
IS_EXTERNAL = "TRUE"


def get_case_insensitive(mapping: dict[str, str], key: str) -> Optional[str]:
    """Look up a key ignoring case.

    An exact match wins over a case-insensitive one. Among case-insensitive
    matches the first in iteration order is returned.
    """
    if key in mapping:
        return mapping[key]
    lowered = key.lower()
    for candidate, value in mapping.items():
        if candidate.lower() == lowered:
            return value
    return None


@dataclass
class TableHandle:
    """A replica table as seen by the metastore."""

    database: str
    name: str
    location: str  # Storage root, e.g. s3://bucket/db/table
    partition_keys: list[str] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)
    raw: Optional[dict[str, Any]] = None  # Metastore-native representation, if any

    @property
    def qualified_name(self) -> str:
        return f"{self.database}.{self.name}"

    @property
    def partition_key_count(self) -> int:
        return len(self.partition_keys)

    @property
    def is_external(self) -> bool:
        """True if the EXTERNAL parameter is TRUE, keys and values compared ignoring case."""
        value = get_case_insensitive(self.parameters, EXTERNAL_KEY)
        return value is not None and value.upper() == IS_EXTERNAL

    def with_parameters(self, parameters: dict[str, str]) -> "TableHandle":
        """Return a copy of this table carrying the given parameters."""
        return replace(self, parameters=dict(parameters))


@dataclass
class DeletionResult:
    """Outcome of deleting the data at one location."""

    location: str
    deleted: bool = False
    error: Optional[str] = None
    unsupported: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.unsupported

    def __str__(self) -> str:
        if self.unsupported:
            return f"{self.location}: unsupported ({self.error})"
        if self.error:
            return f"{self.location}: failed ({self.error})"
        return f"{self.location}: deleted={self.deleted}"


@dataclass
class DeletionSummary:
    """Aggregated partition deletion results for one table."""

    table_name: str
    attempted: int
    deleted: int
    failed: int
    unsupported: int
    failures: list[tuple[str, str]] = field(default_factory=list)  # (location, error)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0 and self.unsupported == 0

    def __str__(self) -> str:
        lines = [
            f"Partition data deletion for {self.table_name}:",
            f"  Attempted: {self.attempted}",
            f"  Deleted: {self.deleted}",
            f"  Failed: {self.failed}",
            f"  Unsupported: {self.unsupported}",
        ]
        for location, error in self.failures:
            lines.append(f"  - {location}: {error}")
        return "\n".join(lines)


def create_deletion_summary(table_name: str, results: list[Any]) -> DeletionSummary:
    """Aggregate DeletionResult objects (and any captured exceptions) into a summary."""
    deleted = 0
    failed = 0
    unsupported = 0
    failures: list[tuple[str, str]] = []

    for result in results:
        if isinstance(result, DeletionResult):
            if result.unsupported:
                unsupported += 1
                failures.append((result.location, result.error or "unsupported"))
            elif result.error is not None:
                failed += 1
                failures.append((result.location, result.error))
            elif result.deleted:
                deleted += 1
        elif isinstance(result, Exception):
            failed += 1
            failures.append(("unknown", str(result)))
        else:
            failed += 1
            failures.append(("unknown", f"Unexpected result type: {type(result)}"))

    return DeletionSummary(
        table_name=table_name,
        attempted=len(results),
        deleted=deleted,
        failed=failed,
        unsupported=unsupported,
        failures=failures,
    )
