"""Tests for the staging loader."""
import pandas as pd
import pytest
from sqlalchemy import inspect, text

import staging
from staging import (
    InvalidResponseError, check_staging_quality, load_staging, read_location_csv,
    read_survey_csv, validate_responses
)


def test_read_survey_csv_maps_published_headers(raw_csv_files):
    """Test that aliased headers are renamed and extra columns dropped."""
    df = read_survey_csv(raw_csv_files["survey"])

    assert list(df.columns) == [
        "question_text", "response", "break_out", "break_out_category",
        "sample_size", "data_value", "zipcode"
    ]
    assert len(df) == 6
    assert df.loc[0, "zipcode"] == "73102"
    assert df.loc[3, "break_out"] == "$15,000-$24,999"
    assert str(df["sample_size"].dtype) == "Int64"
    assert df.loc[0, "data_value"] == 56


def test_read_survey_csv_limits_rows(raw_csv_files):
    df = read_survey_csv(raw_csv_files["survey"], nrows=2)
    assert len(df) == 2


def test_read_location_csv(raw_csv_files):
    df = read_location_csv(raw_csv_files["locations"])

    assert list(df.columns) == ["zipcode", "city", "county"]
    assert df["zipcode"].tolist() == ["73102", "74103", "10001"]


def test_read_csv_missing_columns_raises(tmp_path):
    """Test that a file without the required columns is rejected."""
    path = tmp_path / "bad.csv"
    pd.DataFrame({"ZipCode": ["73102"], "City": ["Oklahoma City"]}).to_csv(path, index=False)

    with pytest.raises(ValueError, match="county"):
        read_location_csv(path)


def test_read_csv_conflicting_header_aliases_raises(tmp_path):
    """Test that two headers mapping to the same column are rejected."""
    path = tmp_path / "survey.csv"
    path.write_text(
        "Question,Response,Break_Out,Break_Out_Category,Sample_Size,Data_value,Data_Value,ZipCode\n"
        "Heavy drinkers,Yes,18-24,Age Group,100,56,57,73102\n"
    )

    with pytest.raises(ValueError, match=r"Duplicate column.*data_value"):
        read_survey_csv(path)


def test_read_location_csv_conflicting_zip_headers_raises(tmp_path):
    path = tmp_path / "locations.csv"
    path.write_text("ZipCode,Zip,City,County\n73102,73102,Oklahoma City,Oklahoma\n")

    with pytest.raises(ValueError, match="zipcode"):
        read_location_csv(path)


def test_read_csv_trims_whitespace_and_blank_values(tmp_path):
    path = tmp_path / "locations.csv"
    path.write_text("ZipCode,City,County\n 73102 , Oklahoma City ,  \n")

    df = read_location_csv(path)

    assert df.loc[0, "zipcode"] == "73102"
    assert df.loc[0, "city"] == "Oklahoma City"
    assert pd.isna(df.loc[0, "county"])


def test_find_raw_file_missing(tmp_path, monkeypatch):
    monkeypatch.setattr(staging, "RAW_DATA_DIR", tmp_path)

    with pytest.raises(FileNotFoundError, match="OK_BRFSS_Survey.csv"):
        staging.find_raw_file("OK_BRFSS_Survey.csv")


def test_validate_responses_accepts_yes_no_and_null(survey_df):
    survey_df.loc[0, "response"] = None
    validate_responses(survey_df)


def test_validate_responses_rejects_other_values(survey_df):
    """Test that responses outside Yes/No raise before anything is staged."""
    survey_df.loc[1, "response"] = "Maybe"
    survey_df.loc[2, "response"] = "yes"

    with pytest.raises(InvalidResponseError, match="2 row"):
        validate_responses(survey_df)


def test_check_staging_quality_counts(survey_df):
    """Test missing value and measure bound counts."""
    survey_df.loc[0, "zipcode"] = None
    survey_df.loc[1, "data_value"] = 60  # More than sample_size of 50
    survey_df.loc[2, "data_value"] = -1

    report = check_staging_quality(survey_df)

    assert report["total_rows"] == 6
    assert report["missing"] == {"zipcode": 1}
    assert report["out_of_bounds"] == 2


def test_check_staging_quality_clean_data(survey_df):
    report = check_staging_quality(survey_df)

    assert report["missing"] == {}
    assert report["out_of_bounds"] == 0


def test_load_staging_loads_rows_verbatim(engine, survey_df, locations_ok_df, locations_df):
    """Test that every raw row lands in staging, duplicates included."""
    counts = load_staging(engine, survey_df, locations_ok_df, locations_df)

    assert counts == {"ok_brfss_survey": 6, "demographics_ok": 3, "demographics": 3}
    with engine.connect() as conn:
        zipcodes = conn.execute(text("SELECT zipcode FROM demographics ORDER BY row_id")).scalars().all()
        survey_count = conn.execute(text("SELECT COUNT(*) FROM ok_brfss_survey")).scalar_one()
    assert zipcodes == ["73102", "74103", "10001"]
    assert survey_count == 6


def test_load_staging_recreates_tables(engine, survey_df, locations_ok_df, locations_df):
    load_staging(engine, survey_df, locations_ok_df, locations_df)
    load_staging(engine, survey_df, locations_ok_df, locations_df)

    with engine.connect() as conn:
        survey_count = conn.execute(text("SELECT COUNT(*) FROM ok_brfss_survey")).scalar_one()
    assert survey_count == 6


def test_load_staging_invalid_response_writes_nothing(engine, survey_df, locations_ok_df, locations_df):
    survey_df.loc[0, "response"] = "Unsure"

    with pytest.raises(InvalidResponseError):
        load_staging(engine, survey_df, locations_ok_df, locations_df)

    assert "ok_brfss_survey" not in inspect(engine).get_table_names()
