"""Cloud Spanner connector.

``google-cloud-spanner`` is an optional dependency (``pip install
spanrax[spanner]``); it is imported only when a client is opened, so this
package can be imported and used in test mode without it.
"""

from spanrax.spanner.config import (
    PartitionOptions,
    SpannerConfig,
    TimestampBound,
    TimestampBoundMode,
)
from spanrax.spanner.io import (
    save_as_spanner,
    save_as_spanner_with_config,
    save_mutation_groups_as_spanner,
    save_mutation_groups_as_spanner_with_config,
    spanner_from_query,
    spanner_from_query_with_config,
    spanner_from_table,
    spanner_from_table_with_config,
)
from spanrax.spanner.mutations import KeySet, Mutation, MutationGroup, Op
from spanrax.spanner.read import SpannerRead, SpannerSource, SpannerSourceConfig
from spanrax.spanner.write import DEFAULT_BATCH_SIZE_BYTES, SpannerWrite, SpannerWriteResult

__all__ = [
    # Configuration
    "SpannerConfig",
    "PartitionOptions",
    "TimestampBound",
    "TimestampBoundMode",
    # Mutations
    "Op",
    "KeySet",
    "Mutation",
    "MutationGroup",
    # Reads
    "SpannerRead",
    "SpannerSource",
    "SpannerSourceConfig",
    "spanner_from_table",
    "spanner_from_table_with_config",
    "spanner_from_query",
    "spanner_from_query_with_config",
    # Writes
    "DEFAULT_BATCH_SIZE_BYTES",
    "SpannerWrite",
    "SpannerWriteResult",
    "save_as_spanner",
    "save_as_spanner_with_config",
    "save_mutation_groups_as_spanner",
    "save_mutation_groups_as_spanner_with_config",
]
