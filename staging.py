#!/usr/bin/env python3
"""
Staging loader for the raw BRFSS survey and location exports
"""
import logging

import pandas as pd
from sqlalchemy import select

from config import (
    RAW_DATA_DIR, COLUMN_ALIASES, SURVEY_COLUMNS, MEASURE_COLUMNS,
    LOCATION_COLUMNS, VALID_RESPONSES
)
from schema import create_staging_tables

logger = logging.getLogger(__name__)


class InvalidResponseError(ValueError):
    """Raised when survey responses fall outside the Yes/No domain."""


def find_raw_file(filename):
    """Find a raw CSV export by name"""
    file_path = RAW_DATA_DIR / filename
    if not file_path.exists():
        raise FileNotFoundError(f"{filename} not found in {RAW_DATA_DIR}")
    return file_path


def _read_csv(file_path, nrows=None):
    # Load CSV with encoding handling
    try:
        df = pd.read_csv(file_path, dtype=str, na_values=['', 'NULL', 'N/A'], nrows=nrows)
    except UnicodeDecodeError:
        df = pd.read_csv(file_path, dtype=str, na_values=['', 'NULL', 'N/A'], encoding='latin-1', nrows=nrows)
    print(f"Loaded {len(df)} rows and {len(df.columns)} columns from {file_path}")
    return df


def _normalize(df, columns):
    """Rename aliased headers, keep the expected columns and trim text values."""
    df = df.rename(columns=COLUMN_ALIASES)
    duplicated = sorted(set(df.columns[df.columns.duplicated()]))
    if duplicated:
        raise ValueError(f"Duplicate column(s) after renaming headers: {duplicated}")

    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required column(s): {missing}")

    df = df[columns].copy()
    for col in columns:
        if col in MEASURE_COLUMNS:
            continue
        stripped = df[col].str.strip()
        df[col] = stripped.where(stripped != '', pd.NA)
    return df


def coerce_measures(df):
    """Cast sample_size and data_value to nullable integers."""
    df = df.copy()
    for col in MEASURE_COLUMNS:
        numeric = pd.to_numeric(df[col].astype("string").str.replace(',', '', regex=False), errors='coerce')
        df[col] = numeric.round().astype("Int64")
    return df


def read_survey_csv(file_path, nrows=None):
    """Load survey responses with the seven staging columns"""
    df = _normalize(_read_csv(file_path, nrows), SURVEY_COLUMNS)
    return coerce_measures(df)


def read_location_csv(file_path, nrows=None):
    """Load a zipcode/city/county lookup"""
    return _normalize(_read_csv(file_path, nrows), LOCATION_COLUMNS)


def validate_responses(survey_df):
    """
    Responses must be Yes or No.

    Nulls pass, as they do a SQL CHECK constraint; such rows never match
    the response dimension and are reported by the fact builder instead.
    """
    responses = survey_df['response']
    invalid = responses[responses.notna() & ~responses.isin(VALID_RESPONSES)]
    if not invalid.empty:
        values = sorted(invalid.unique().tolist())
        raise InvalidResponseError(
            f"{len(invalid)} row(s) have a response outside {list(VALID_RESPONSES)}: {values}"
        )


def check_staging_quality(survey_df):
    """Data quality assessment of the raw survey rows"""
    report = {'total_rows': len(survey_df)}

    # Missing data
    missing = survey_df.isnull().sum()
    report['missing'] = {col: int(count) for col, count in missing[missing > 0].items()}
    for col, count in report['missing'].items():
        logger.warning(f"{col}: {count:,} missing values ({count/len(survey_df):.1%})")

    # sample_size >= data_value >= 0
    sample_size = survey_df['sample_size']
    data_value = survey_df['data_value']
    both = sample_size.notna() & data_value.notna()
    out_of_bounds = both & ((data_value < 0) | (data_value > sample_size))
    negative_samples = sample_size.notna() & (sample_size < 0)
    report['out_of_bounds'] = int((out_of_bounds | negative_samples).sum())
    if report['out_of_bounds']:
        logger.warning(
            f"{report['out_of_bounds']:,} row(s) violate sample_size >= data_value >= 0"
        )

    return report


def load_staging(engine, survey_df, locations_ok_df, locations_df):
    """
    Load raw rows verbatim into freshly created staging tables.

    Returns row counts per staging table.
    """
    validate_responses(survey_df)
    frames = {
        'ok_brfss_survey': survey_df[SURVEY_COLUMNS],
        'demographics_ok': locations_ok_df[LOCATION_COLUMNS],
        'demographics': locations_df[LOCATION_COLUMNS],
    }

    with engine.begin() as conn:
        create_staging_tables(conn)
        for table_name, df in frames.items():
            df.to_sql(table_name, conn, if_exists='append', index=False)
            print(f"Staged {len(df):,} rows into {table_name}")

    return {table_name: len(df) for table_name, df in frames.items()}


def read_staging_table(connection, table, columns):
    """Read a staging table back in insertion order"""
    query = select(*[table.c[col] for col in columns]).order_by(*table.primary_key.columns)
    df = pd.read_sql(query, connection)
    if set(MEASURE_COLUMNS).issubset(columns):
        df = coerce_measures(df)
    return df
