#!/usr/bin/env python3
"""
ETL Pipeline for the OK BRFSS Alcohol Abuse Warehouse

Staging -> dimensions -> facts, each stage in its own transaction and
each run to completion before the next starts.
"""
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from config import DB_CONFIG, RAW_FILES, PROCESSED_DATA_DIR
from dimensions import build_and_load_dimensions
from facts import build_and_load_facts
from staging import (
    find_raw_file, read_survey_csv, read_location_csv, check_staging_quality, load_staging
)


def load_raw_data(survey_path=None, locations_ok_path=None, locations_path=None, nrows=None):
    """Read the three raw CSV exports; nrows limits the survey rows only"""
    survey_path = survey_path or find_raw_file(RAW_FILES['ok_brfss_survey'])
    locations_ok_path = locations_ok_path or find_raw_file(RAW_FILES['demographics_ok'])
    locations_path = locations_path or find_raw_file(RAW_FILES['demographics'])

    survey_df = read_survey_csv(survey_path, nrows)
    locations_ok_df = read_location_csv(locations_ok_path)
    locations_df = read_location_csv(locations_path)
    return survey_df, locations_ok_df, locations_df


def run_etl(engine=None, survey_path=None, locations_ok_path=None, locations_path=None,
            nrows=None, audit_dir=PROCESSED_DATA_DIR):
    """Run complete ETL pipeline"""
    print("=== OK BRFSS ETL Pipeline ===")
    engine = engine or create_engine(DB_CONFIG)

    survey_df, locations_ok_df, locations_df = load_raw_data(
        survey_path, locations_ok_path, locations_path, nrows
    )
    check_staging_quality(survey_df)

    staged = load_staging(engine, survey_df, locations_ok_df, locations_df)
    print(f"Staging complete: {staged}")

    dimensions = build_and_load_dimensions(engine)
    print("Dimensions complete: " + ", ".join(
        f"{name}={len(df):,}" for name, df in dimensions._asdict().items()
    ))

    result = build_and_load_facts(engine, dimensions, audit_dir=audit_dir)

    print(f"=== Complete: {len(result.facts)} facts, {len(result.unmatched)} unmatched ===")
    return result


def test_connection(db_url=DB_CONFIG):
    """Test database connection"""
    try:
        engine = create_engine(db_url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("Database connection successful")
        return True
    except SQLAlchemyError as e:
        print(f"Database connection failed: {e}")
        return False


if __name__ == "__main__":
    import sys
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if len(sys.argv) > 1 and sys.argv[1] == "test":
        sys.exit(0 if test_connection() else 1)
    else:
        run_etl()
