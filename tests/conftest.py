import pandas as pd
import pytest
from sqlalchemy import create_engine

from dimensions import build_and_load_dimensions
from facts import build_and_load_facts
from staging import coerce_measures, load_staging


SURVEY_ROWS = [
    # question_text, response, break_out, break_out_category, sample_size, data_value, zipcode
    ("Alcohol abuse", "Yes", "18-24", "Age Group", "100", "56", "73102"),
    ("Alcohol abuse", "Yes", "18-24", "Age Group", "50", "10", "74103"),
    ("Alcohol abuse", "Yes", "25-34", "Age Group", "200", "40", "73102"),
    ("Alcohol abuse", "No", "$15,000-$24,999", "Household Income", "80", "20", "74103"),
    ("Alcohol abuse", "Yes", "18-24", "Age Group", "0", "0", "73501"),    # No participants
    ("Alcohol abuse", "Yes", "18-24", "Age Group", "30", "5", "99999"),   # Unknown zipcode
]

SURVEY_COLUMNS = [
    "question_text", "response", "break_out", "break_out_category",
    "sample_size", "data_value", "zipcode"
]


@pytest.fixture
def survey_df():
    """Staged survey rows as read from the raw export"""
    return coerce_measures(pd.DataFrame(SURVEY_ROWS, columns=SURVEY_COLUMNS))


@pytest.fixture
def locations_ok_df():
    """Oklahoma zipcode lookup"""
    return pd.DataFrame(
        [
            ("73102", "Oklahoma City", "Oklahoma"),
            ("74103", "Tulsa", "Tulsa"),
            ("73501", "Lawton", "Comanche"),
        ],
        columns=["zipcode", "city", "county"],
    )


@pytest.fixture
def locations_df():
    """General US zipcode lookup, overlapping the Oklahoma one"""
    return pd.DataFrame(
        [
            ("73102", "Oklahoma City", "Oklahoma"),  # Same row in both sources
            ("74103", "Tulsa City", "Tulsa"),        # Conflicting city
            ("10001", "New York", "New York"),
        ],
        columns=["zipcode", "city", "county"],
    )


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite warehouse for tests"""
    engine = create_engine(f"sqlite:///{tmp_path / 'warehouse.db'}")

    yield engine

    engine.dispose()


@pytest.fixture
def audit_dir(tmp_path):
    return tmp_path / "processed"


@pytest.fixture
def staged_engine(engine, survey_df, locations_ok_df, locations_df):
    """Warehouse database with the staging tables loaded"""
    load_staging(engine, survey_df, locations_ok_df, locations_df)
    return engine


@pytest.fixture
def warehouse(staged_engine, audit_dir):
    """Fully built warehouse; yields the engine and the fact build result"""
    dimensions = build_and_load_dimensions(staged_engine)
    result = build_and_load_facts(staged_engine, dimensions, audit_dir=audit_dir)
    return staged_engine, dimensions, result


@pytest.fixture
def raw_csv_files(tmp_path, locations_ok_df, locations_df):
    """Raw exports with the published column headers"""
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()

    survey = pd.DataFrame(SURVEY_ROWS, columns=[
        "Question", "Response", "Break_Out", "Break_Out_Category",
        "Sample_Size", "Data_value", "ZipCode"
    ])
    survey.insert(0, "Year", "2023")
    survey.to_csv(raw_dir / "OK_BRFSS_Survey.csv", index=False)

    for name, df in [("Demographics_OK.csv", locations_ok_df), ("Demographics.csv", locations_df)]:
        df.rename(columns={"zipcode": "ZipCode", "city": "City", "county": "County"}).to_csv(
            raw_dir / name, index=False
        )

    return {
        "survey": raw_dir / "OK_BRFSS_Survey.csv",
        "locations_ok": raw_dir / "Demographics_OK.csv",
        "locations": raw_dir / "Demographics.csv",
    }
