#!/usr/bin/env python3
"""
Dimension builder for the BRFSS star schema

Each dimension holds the distinct values of one staging column (or, for
locations, the union of the two lookup tables) keyed by a surrogate id.
"""
import logging
from collections import namedtuple

import pandas as pd

from config import LOCATION_COLUMNS, SURVEY_COLUMNS
from schema import (
    create_warehouse_tables, survey_staging, demographics_ok_staging, demographics_staging
)
from staging import read_staging_table

logger = logging.getLogger(__name__)


class DuplicateKeyError(ValueError):
    """Raised when a dimension's natural key is not unique."""


Dimensions = namedtuple(
    "Dimensions", ["location", "question", "response", "breakout", "breakout_category"]
)

# dimension -> (table name, surrogate key, natural key columns)
DIMENSION_KEYS = {
    'location': ("location_dim", "zipcode", ["zipcode"]),
    'question': ("question_dim", "question_id", ["question_text"]),
    'response': ("response_dim", "response_id", ["response"]),
    'breakout': ("breakout_dim", "break_out_id", ["break_out_type"]),
    'breakout_category': ("breakout_category_dim", "break_out_category_id", ["break_out_category"]),
}


def _distinct_values(survey_df, source_col, dim_col, key_col):
    """Distinct non-null values of one column, numbered 1..n in first-seen order"""
    values = survey_df[source_col].dropna().drop_duplicates()
    dim_df = pd.DataFrame({dim_col: values.to_numpy()})
    dim_df.insert(0, key_col, range(1, len(dim_df) + 1))
    return dim_df


def build_question_dim(survey_df):
    return _distinct_values(survey_df, "question_text", "question_text", "question_id")


def build_response_dim(survey_df):
    return _distinct_values(survey_df, "response", "response", "response_id")


def build_breakout_dim(survey_df):
    """Breakout types, e.g. "18-24" or "$15,000-$24,999"."""
    return _distinct_values(survey_df, "break_out", "break_out_type", "break_out_id")


def build_breakout_category_dim(survey_df):
    """Breakout categories, e.g. "Age Group" or "Household Income"."""
    return _distinct_values(
        survey_df, "break_out_category", "break_out_category", "break_out_category_id"
    )


def build_location_dim(locations_ok_df, locations_df):
    """
    Union the Oklahoma and general lookups into one row per zipcode.

    Rows without a zipcode are dropped. When a zipcode appears in both
    sources with different city/county values the Oklahoma lookup wins.
    """
    combined = pd.concat(
        [locations_ok_df[LOCATION_COLUMNS], locations_df[LOCATION_COLUMNS]],
        ignore_index=True
    )
    combined = combined.dropna(subset=["zipcode"]).drop_duplicates()

    conflicts = combined["zipcode"][combined["zipcode"].duplicated()].unique()
    if len(conflicts):
        logger.warning(
            f"{len(conflicts)} zipcode(s) have conflicting city/county values, "
            f"keeping the first: {sorted(conflicts)[:10]}"
        )

    location_df = combined.drop_duplicates(subset=["zipcode"], keep="first")
    return location_df.reset_index(drop=True)


def build_dimensions(survey_df, locations_ok_df, locations_df):
    """Build all five dimension frames from staging rows"""
    return Dimensions(
        location=build_location_dim(locations_ok_df, locations_df),
        question=build_question_dim(survey_df),
        response=build_response_dim(survey_df),
        breakout=build_breakout_dim(survey_df),
        breakout_category=build_breakout_category_dim(survey_df),
    )


def check_unique_keys(dimensions):
    """Every dimension's natural key and surrogate key must be unique."""
    for name, (table_name, key_col, natural_cols) in DIMENSION_KEYS.items():
        dim_df = getattr(dimensions, name)
        for cols in ([key_col], natural_cols):
            duplicated = dim_df[dim_df.duplicated(subset=cols, keep=False)]
            if not duplicated.empty:
                raise DuplicateKeyError(
                    f"{table_name}: duplicate {cols} values: "
                    f"{duplicated[cols].drop_duplicates().to_dict('records')[:10]}"
                )


def load_dimensions(engine, dimensions):
    """Create the warehouse tables and insert all dimension rows"""
    check_unique_keys(dimensions)
    with engine.begin() as conn:
        create_warehouse_tables(conn)
        for name, (table_name, _, _) in DIMENSION_KEYS.items():
            dim_df = getattr(dimensions, name)
            dim_df.to_sql(table_name, conn, if_exists='append', index=False)
            print(f"Loaded {len(dim_df):,} rows into {table_name}")


def build_and_load_dimensions(engine):
    """Read the staging tables, then build and load every dimension"""
    with engine.connect() as conn:
        survey_df = read_staging_table(conn, survey_staging, SURVEY_COLUMNS)
        locations_ok_df = read_staging_table(conn, demographics_ok_staging, LOCATION_COLUMNS)
        locations_df = read_staging_table(conn, demographics_staging, LOCATION_COLUMNS)

    dimensions = build_dimensions(survey_df, locations_ok_df, locations_df)
    load_dimensions(engine, dimensions)
    return dimensions
