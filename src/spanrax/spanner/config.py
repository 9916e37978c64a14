"""Connection, partitioning and read-consistency settings for Cloud Spanner.

SpannerConfig identifies a database and opens client handles for it. Its string
form is stable and is the key under which test-mode reads and writes are
mocked. PartitionOptions and TimestampBound are passed through to the Spanner
client unchanged.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


def import_spanner() -> Any:
    """Import ``google.cloud.spanner`` lazily.

    Raises:
        ImportError: If google-cloud-spanner is not installed.
    """
    try:
        from google.cloud import spanner  # type: ignore[import-not-found]
    except ImportError as e:
        raise ImportError(
            "Reading from and writing to Cloud Spanner requires additional "
            "dependencies. Install Spanrax with the optional Spanner dependencies "
            "using: pip install spanrax[spanner]"
        ) from e
    return spanner


@dataclass(frozen=True)
class SpannerConfig:
    """Identifies a Cloud Spanner database.

    Args:
        project_id: Google Cloud project
        instance_id: Spanner instance
        database_id: Spanner database
        emulator_host: ``host:port`` of a Spanner emulator; connects with
            anonymous credentials when set
        database_role: Fine-grained access control role for the session

    Examples:
        ```python
        config = (
            SpannerConfig.create()
            .with_project_id("my-project")
            .with_instance_id("my-instance")
            .with_database_id("my-db")
        )
        database = config.database()
        ```
    """

    project_id: str | None = None
    instance_id: str | None = None
    database_id: str | None = None
    emulator_host: str | None = None
    database_role: str | None = None

    @classmethod
    def create(cls) -> SpannerConfig:
        """Return an empty config to be completed with the ``with_*`` methods."""
        return cls()

    def with_project_id(self, project_id: str) -> SpannerConfig:
        return replace(self, project_id=project_id)

    def with_instance_id(self, instance_id: str) -> SpannerConfig:
        return replace(self, instance_id=instance_id)

    def with_database_id(self, database_id: str) -> SpannerConfig:
        return replace(self, database_id=database_id)

    def with_emulator_host(self, emulator_host: str) -> SpannerConfig:
        return replace(self, emulator_host=emulator_host)

    def with_database_role(self, database_role: str) -> SpannerConfig:
        return replace(self, database_role=database_role)

    def validate(self) -> None:
        """Check that the database is fully identified.

        Raises:
            ValueError: If project, instance or database id is missing.
        """
        missing = [
            name
            for name in ("project_id", "instance_id", "database_id")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(f"SpannerConfig is missing {', '.join(missing)}: {self}")

    def client(self) -> Any:
        """Create a ``google.cloud.spanner.Client`` for this config."""
        self.validate()
        spanner = import_spanner()
        if self.emulator_host is None:
            return spanner.Client(project=self.project_id)

        from google.auth.credentials import AnonymousCredentials

        return spanner.Client(
            project=self.project_id,
            credentials=AnonymousCredentials(),
            client_options={"api_endpoint": self.emulator_host},
        )

    def database(self, client: Any | None = None) -> Any:
        """Return the client's handle for the configured database.

        Args:
            client: Existing client to reuse; a new one is created if omitted.
        """
        self.validate()
        client = client if client is not None else self.client()
        instance = client.instance(self.instance_id)
        if self.database_role is None:
            return instance.database(self.database_id)
        return instance.database(self.database_id, database_role=self.database_role)

    def __str__(self) -> str:
        parts = [
            f"{name}={value}"
            for name, value in (
                ("projectId", self.project_id),
                ("instanceId", self.instance_id),
                ("databaseId", self.database_id),
                ("emulatorHost", self.emulator_host),
                ("databaseRole", self.database_role),
            )
            if value is not None
        ]
        return f"SpannerConfig{{{', '.join(parts)}}}"


@dataclass(frozen=True)
class PartitionOptions:
    """Hints for splitting a read into partitions.

    Args:
        partition_size_bytes: Desired data size per partition
        max_partitions: Desired maximum number of partitions
    """

    partition_size_bytes: int | None = None
    max_partitions: int | None = None

    def __post_init__(self):
        for name in ("partition_size_bytes", "max_partitions"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def batch_kwargs(self) -> dict[str, int]:
        """Keyword arguments for ``BatchSnapshot.generate_*_batches``."""
        kwargs = {}
        if self.partition_size_bytes is not None:
            kwargs["partition_size_bytes"] = self.partition_size_bytes
        if self.max_partitions is not None:
            kwargs["max_partitions"] = self.max_partitions
        return kwargs


class TimestampBoundMode(Enum):
    STRONG = "strong"
    READ_TIMESTAMP = "read_timestamp"
    MIN_READ_TIMESTAMP = "min_read_timestamp"
    EXACT_STALENESS = "exact_staleness"
    MAX_STALENESS = "max_staleness"


@dataclass(frozen=True)
class TimestampBound:
    """Consistency bound of a read-only snapshot.

    Build with the class methods; the constructor is not meant to be called directly.

    Examples:
        ```python
        TimestampBound.strong()
        TimestampBound.exact_staleness(datetime.timedelta(seconds=15))
        TimestampBound.read_timestamp(commit_ts)
        ```
    """

    mode: TimestampBoundMode = TimestampBoundMode.STRONG
    timestamp: datetime.datetime | None = None
    staleness: datetime.timedelta | None = None

    def __post_init__(self):
        timestamp_modes = (TimestampBoundMode.READ_TIMESTAMP, TimestampBoundMode.MIN_READ_TIMESTAMP)
        staleness_modes = (TimestampBoundMode.EXACT_STALENESS, TimestampBoundMode.MAX_STALENESS)
        if self.mode in timestamp_modes and self.timestamp is None:
            raise ValueError(f"{self.mode.value} bound requires a timestamp")
        if self.mode in staleness_modes:
            if self.staleness is None:
                raise ValueError(f"{self.mode.value} bound requires a staleness")
            if self.staleness < datetime.timedelta(0):
                raise ValueError(f"staleness must not be negative, got {self.staleness}")

    @classmethod
    def strong(cls) -> TimestampBound:
        return cls()

    @classmethod
    def read_timestamp(cls, timestamp: datetime.datetime) -> TimestampBound:
        return cls(TimestampBoundMode.READ_TIMESTAMP, timestamp=timestamp)

    @classmethod
    def min_read_timestamp(cls, timestamp: datetime.datetime) -> TimestampBound:
        return cls(TimestampBoundMode.MIN_READ_TIMESTAMP, timestamp=timestamp)

    @classmethod
    def exact_staleness(cls, staleness: datetime.timedelta) -> TimestampBound:
        return cls(TimestampBoundMode.EXACT_STALENESS, staleness=staleness)

    @classmethod
    def max_staleness(cls, staleness: datetime.timedelta) -> TimestampBound:
        return cls(TimestampBoundMode.MAX_STALENESS, staleness=staleness)

    @property
    def is_bounded(self) -> bool:
        """Whether the bound lets Spanner pick the timestamp (single-use reads only)."""
        return self.mode in (
            TimestampBoundMode.MIN_READ_TIMESTAMP,
            TimestampBoundMode.MAX_STALENESS,
        )

    def snapshot_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``Database.snapshot``/``Database.batch_snapshot``."""
        if self.mode is TimestampBoundMode.STRONG:
            return {}
        if self.mode in (TimestampBoundMode.READ_TIMESTAMP, TimestampBoundMode.MIN_READ_TIMESTAMP):
            return {self.mode.value: self.timestamp}
        return {self.mode.value: self.staleness}

    def __str__(self) -> str:
        if self.mode is TimestampBoundMode.STRONG:
            return "TimestampBound(strong)"
        value = self.timestamp if self.timestamp is not None else self.staleness
        return f"TimestampBound({self.mode.value}={value})"
