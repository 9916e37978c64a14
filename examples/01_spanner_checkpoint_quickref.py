# ---
# jupyter:
#   jupytext:
#     formats: py:percent,ipynb
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
# ---

# %% [markdown]
"""
# Spanner IO and Stage Checkpoints Quick Reference

| Metadata | Value |
|----------|-------|
| **Level** | Beginner |
| **Runtime** | ~2 min |
| **Prerequisites** | Basic JAX, a Spanner database (or none, in test mode) |
| **Format** | Python + Jupyter |

## Overview

Read a Spanner table into a pipeline, derive mutations from it, checkpoint
the derived stage, and write the mutations back. The example runs in test
mode, so no Spanner instance is needed: the read is served from registered
rows and the write is recorded.

## Learning Goals

1. Read a table with `spanner_from_table`
2. Memoize a stage with `checkpoint`
3. Write mutations with `save_as_spanner`
4. Mock connector IO with `PipelineContext.for_testing`
"""

# %%
import tempfile

from spanrax import (
    CustomIO,
    Mutation,
    PipelineContext,
    PipelineOptions,
    SpannerConfig,
    save_as_spanner,
    spanner_from_table,
)
from spanrax.checkpoint import checkpoint

# %% [markdown]
"""
## Step 1: Register test rows

In test mode every Spanner read and write is keyed by the string form of the
SpannerConfig it targets.
"""

# %%
config = SpannerConfig("demo-project", "demo-instance", "demo-db")
singers_io = CustomIO(str(config))
rows = [
    {"SingerId": 1, "FirstName": "Marc", "Rating": 4.5},
    {"SingerId": 2, "FirstName": "Catalina", "Rating": 3.0},
    {"SingerId": 3, "FirstName": "Alice", "Rating": 5.0},
]

temp_location = tempfile.mkdtemp(prefix="spanrax-demo-")
options = PipelineOptions(app_name="quickref", temp_location=temp_location)

# %% [markdown]
"""
## Step 2: Read, checkpoint and write
"""


# %%
def run(ctx: PipelineContext) -> None:
    singers = spanner_from_table(
        ctx, "demo-project", "demo-instance", "demo-db",
        table="Singers", columns=["SingerId", "FirstName", "Rating"],
    )

    def top_rated():
        names = [
            Mutation.insert_or_update("TopSingers", ["SingerId"], [[int(row["SingerId"])]])
            for row in singers
            if float(row["Rating"]) >= 4.0
        ]
        return ctx.parallelize(names, name="top-rated")

    mutations = checkpoint(ctx, "top-rated", top_rated)
    result = save_as_spanner(mutations, "demo-project", "demo-instance", "demo-db")
    print(f"Wrote {result.mutation_count} mutations")


ctx = PipelineContext.for_testing(inputs={singers_io: rows}, options=options)
run(ctx)
print(ctx.test_io.output(singers_io))

# %% [markdown]
"""
## Step 3: Rerun against the checkpoint

The second run finds the completed checkpoint and skips `top_rated`.
"""

# %%
ctx = PipelineContext.for_testing(inputs={singers_io: rows}, options=options)
run(ctx)
