"""Table parameter transformations driven by replication lifecycle events.

A transformation starts from baseline parameters taken from static
configuration. Each ReplicationStart event may carry an override under the
"table-properties" transform option. The override applies from that start
event until the next one; success and failure events leave it in place.

Runs that overlap in time must not share the instance-level override. Keep
the TransformationContext returned by table_replication_start() and pass it
to table_parameters() / transform() explicitly instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from hive_replica.config import TableReplication
from hive_replica.models import TableHandle

logger = logging.getLogger(__name__)

TRANSFORM_OPTIONS_TABLE_PROPERTIES = "table-properties"


@dataclass(frozen=True)
class ReplicationStart:
    event_id: str
    transform_options: Optional[dict[str, Any]] = None

    @classmethod
    def for_replication(cls, event_id: str, replication: TableReplication) -> "ReplicationStart":
        """Start event carrying a configured replication's transform options."""
        return cls(event_id=event_id, transform_options=dict(replication.transform_options))


@dataclass(frozen=True)
class ReplicationSuccess:
    event_id: str
    transform_options: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class ReplicationFailure:
    event_id: str
    transform_options: Optional[dict[str, Any]] = None
    error: Optional[BaseException] = None


TableReplicationEvent = Union[ReplicationStart, ReplicationSuccess, ReplicationFailure]


@dataclass(frozen=True)
class TransformationContext:
    """The parameter override in force for one replication run."""

    event_id: Optional[str] = None
    parameters: dict[str, str] = field(default_factory=dict)


def _string_mapping(value: Any) -> Optional[dict[str, str]]:
    """Return value as a str -> str dict, or None if it is not one."""
    if not isinstance(value, dict):
        return None
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
        return None
    return dict(value)


class AbstractTableParametersTransformation:
    """Tracks the table parameters to apply during a replication run.

    Args:
        transform_options: Static transform options. A str -> str mapping
            under "table-properties" becomes the baseline parameters.
    """

    def __init__(self, transform_options: Optional[dict[str, Any]] = None):
        self._table_parameters: dict[str, str] = {}
        self._context = TransformationContext()
        if not transform_options:
            return
        baseline = _string_mapping(transform_options.get(TRANSFORM_OPTIONS_TABLE_PROPERTIES))
        if baseline is not None:
            self._table_parameters.update(baseline)

    @property
    def baseline_parameters(self) -> dict[str, str]:
        return dict(self._table_parameters)

    def table_parameters(self, context: Optional[TransformationContext] = None) -> dict[str, str]:
        """Parameters in force: the override of context (or of the latest start event) if non-empty, else the baseline."""
        active = context if context is not None else self._context
        if active.parameters:
            return dict(active.parameters)
        return dict(self._table_parameters)

    def on_event(self, event: TableReplicationEvent) -> Optional[TransformationContext]:
        """Dispatch a lifecycle event. Returns the new context for start events."""
        if isinstance(event, ReplicationStart):
            return self.table_replication_start(event)
        if isinstance(event, ReplicationSuccess):
            self.table_replication_success(event)
            return None
        if isinstance(event, ReplicationFailure):
            self.table_replication_failure(event)
            return None
        raise TypeError(f"Unknown table replication event: {type(event).__name__}")

    def table_replication_start(self, event: ReplicationStart) -> TransformationContext:
        override: dict[str, str] = {}
        if event.transform_options:
            value = event.transform_options.get(TRANSFORM_OPTIONS_TABLE_PROPERTIES)
            mapping = _string_mapping(value)
            if mapping is not None:
                override = mapping
            elif value is not None:
                logger.warning(
                    f"Ignoring '{TRANSFORM_OPTIONS_TABLE_PROPERTIES}' for replication {event.event_id}: "
                    f"expected a mapping of strings, got {type(value).__name__}"
                )
        self._context = TransformationContext(event_id=event.event_id, parameters=override)
        return self._context

    def table_replication_success(self, event: ReplicationSuccess) -> None:
        pass

    def table_replication_failure(self, event: ReplicationFailure) -> None:
        pass


class TableParametersTransformation(AbstractTableParametersTransformation):
    """Adds the active table parameters to replica tables."""

    def transform(self, table: TableHandle, context: Optional[TransformationContext] = None) -> TableHandle:
        """Return a copy of table with the active parameters merged over its own."""
        parameters = self.table_parameters(context)
        if not parameters:
            return table
        merged = dict(table.parameters)
        merged.update(parameters)
        logger.debug(f"Setting parameters {sorted(parameters)} on {table.qualified_name}")
        return table.with_parameters(merged)
