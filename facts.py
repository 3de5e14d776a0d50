#!/usr/bin/env python3
"""
Fact builder for the BRFSS star schema

Resolves every staged survey row against the five dimensions by natural
key and writes one fact row per fully resolved survey row. Rows that fail
to resolve are kept aside for auditing instead of disappearing.
"""
import logging
from collections import namedtuple
from datetime import datetime

import pandas as pd

from config import PROCESSED_DATA_DIR, SURVEY_COLUMNS, MEASURE_COLUMNS
from schema import survey_staging, survey_fact, drop_staging_tables
from staging import read_staging_table

logger = logging.getLogger(__name__)

FactBuildResult = namedtuple("FactBuildResult", ["facts", "unmatched"])

# (dimension, staging column, dimension natural key, fact column)
FACT_JOINS = [
    ("location", "zipcode", "zipcode", "zipcode"),
    ("question", "question_text", "question_text", "question_id"),
    ("response", "response", "response", "response_id"),
    ("breakout", "break_out", "break_out_type", "break_out_id"),
    ("breakout_category", "break_out_category", "break_out_category", "break_out_category_id"),
]

FACT_COLUMNS = ["survey_id"] + [join[3] for join in FACT_JOINS] + MEASURE_COLUMNS


def build_fact_table(survey_df, dimensions):
    """
    Hash-join staged survey rows against each dimension.

    Args:
        survey_df: Staged survey rows with the seven staging columns
        dimensions: Dimensions built from the same staging rows

    Returns:
        FactBuildResult with the fact frame (surrogate keys plus measures,
        survey_id numbered 1..n) and the unmatched staging rows, each with
        an ``unmatched_on`` column naming the dimensions it failed to join.
    """
    keys = pd.DataFrame(index=survey_df.index)
    failed = pd.DataFrame(index=survey_df.index)

    for dim_name, source_col, natural_col, fact_col in FACT_JOINS:
        dim_df = getattr(dimensions, dim_name)
        lookup = dict(zip(dim_df[natural_col], dim_df[fact_col]))
        keys[fact_col] = survey_df[source_col].map(lookup)
        failed[dim_name] = keys[fact_col].isna()

    matched = ~failed.any(axis=1)

    facts = keys[matched].copy()
    for _, _, _, fact_col in FACT_JOINS[1:]:
        facts[fact_col] = facts[fact_col].astype("int64")
    for col in MEASURE_COLUMNS:
        facts[col] = survey_df.loc[matched, col]
    facts.insert(0, "survey_id", range(1, len(facts) + 1))
    facts = facts.reset_index(drop=True)

    unmatched = survey_df[~matched].copy()
    unmatched["unmatched_on"] = [
        ", ".join(name for name, did_fail in row.items() if did_fail)
        for row in failed[~matched].to_dict("records")
    ]

    if len(unmatched):
        per_dimension = failed[~matched].sum()
        logger.warning(
            f"{len(unmatched):,} of {len(survey_df):,} survey rows did not match every "
            f"dimension and were excluded from the fact table: "
            f"{per_dimension[per_dimension > 0].to_dict()}"
        )
    print(f"Built {len(facts):,} fact rows")

    return FactBuildResult(facts=facts[FACT_COLUMNS], unmatched=unmatched)


def load_facts(connection, facts):
    """Append fact rows; the warehouse tables must already exist"""
    facts[FACT_COLUMNS].to_sql(survey_fact.name, connection, if_exists='append', index=False)
    print(f"Loaded {len(facts):,} rows into {survey_fact.name}")


def save_unmatched(unmatched, output_dir=PROCESSED_DATA_DIR):
    """Save excluded survey rows for auditing"""
    if unmatched.empty:
        return None

    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    csv_file = output_dir / f"unmatched_survey_rows_{timestamp}.csv"
    unmatched.to_csv(csv_file, index=False)
    print(f"Saved {len(unmatched):,} unmatched rows to: {csv_file}")
    return csv_file


def build_and_load_facts(engine, dimensions, drop_staging=True, audit_dir=PROCESSED_DATA_DIR):
    """
    Populate the fact table from staging, then discard the staging tables.

    Facts only reference dimension surrogate keys, so dropping staging
    leaves every loaded row untouched.
    """
    with engine.connect() as conn:
        survey_df = read_staging_table(conn, survey_staging, SURVEY_COLUMNS)

    result = build_fact_table(survey_df, dimensions)

    with engine.begin() as conn:
        load_facts(conn, result.facts)
        if drop_staging:
            drop_staging_tables(conn)

    save_unmatched(result.unmatched, audit_dir)
    return result
