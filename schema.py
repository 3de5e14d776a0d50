"""
Table definitions for the staging area and the star schema
"""
from sqlalchemy import (
    CheckConstraint, Column, ForeignKey, Integer, MetaData, String, Table
)

RESPONSE_CHECK = "response IN ('Yes', 'No')"

STAGING_METADATA = MetaData()
WAREHOUSE_METADATA = MetaData()

# -------------------------- STAGING TABLES --------------------------

survey_staging = Table(
    "ok_brfss_survey", STAGING_METADATA,
    Column("survey_id", Integer, primary_key=True, autoincrement=True),
    Column("question_text", String(255)),
    Column("response", String(30)),
    Column("break_out", String(100)),
    Column("break_out_category", String(100)),
    Column("sample_size", Integer),
    Column("data_value", Integer),
    Column("zipcode", String(10)),
    CheckConstraint(RESPONSE_CHECK, name="ck_ok_brfss_survey_response"),
)


def _location_staging(name):
    return Table(
        name, STAGING_METADATA,
        Column("row_id", Integer, primary_key=True, autoincrement=True),
        Column("zipcode", String(10)),
        Column("city", String(100)),
        Column("county", String(100)),
    )


demographics_ok_staging = _location_staging("demographics_ok")
demographics_staging = _location_staging("demographics")

# ------------------------- DIMENSION TABLES -------------------------

location_dim = Table(
    "location_dim", WAREHOUSE_METADATA,
    Column("zipcode", String(10), primary_key=True),
    Column("city", String(100)),
    Column("county", String(100)),
)

question_dim = Table(
    "question_dim", WAREHOUSE_METADATA,
    Column("question_id", Integer, primary_key=True, autoincrement=False),
    Column("question_text", String(255), unique=True),
)

response_dim = Table(
    "response_dim", WAREHOUSE_METADATA,
    Column("response_id", Integer, primary_key=True, autoincrement=False),
    Column("response", String(30), unique=True),
    CheckConstraint(RESPONSE_CHECK, name="ck_response_dim_response"),
)

breakout_dim = Table(
    "breakout_dim", WAREHOUSE_METADATA,
    Column("break_out_id", Integer, primary_key=True, autoincrement=False),
    Column("break_out_type", String(100), unique=True),
)

breakout_category_dim = Table(
    "breakout_category_dim", WAREHOUSE_METADATA,
    Column("break_out_category_id", Integer, primary_key=True, autoincrement=False),
    Column("break_out_category", String(100), unique=True),
)

# ---------------------------- FACT TABLE ----------------------------

survey_fact = Table(
    "brfss_survey_fact", WAREHOUSE_METADATA,
    Column("survey_id", Integer, primary_key=True, autoincrement=False),
    Column("zipcode", String(10), ForeignKey("location_dim.zipcode"), nullable=False),
    Column("question_id", Integer, ForeignKey("question_dim.question_id"), nullable=False),
    Column("response_id", Integer, ForeignKey("response_dim.response_id"), nullable=False),
    Column("break_out_id", Integer, ForeignKey("breakout_dim.break_out_id"), nullable=False),
    Column(
        "break_out_category_id", Integer,
        ForeignKey("breakout_category_dim.break_out_category_id"), nullable=False
    ),
    Column("sample_size", Integer),
    Column("data_value", Integer),
)


def create_staging_tables(connection):
    """Drop and recreate the staging tables so each run starts empty."""
    STAGING_METADATA.drop_all(connection)
    STAGING_METADATA.create_all(connection)
    print(f"Created staging tables: {sorted(STAGING_METADATA.tables)}")


def drop_staging_tables(connection):
    STAGING_METADATA.drop_all(connection)
    print(f"Dropped staging tables: {sorted(STAGING_METADATA.tables)}")


def create_warehouse_tables(connection):
    """
    Recreate the dimension and fact tables.

    The warehouse is rebuilt in full on every run; there are no
    incremental loads.
    """
    WAREHOUSE_METADATA.drop_all(connection)
    WAREHOUSE_METADATA.create_all(connection)
    print(f"Created warehouse tables: {sorted(WAREHOUSE_METADATA.tables)}")
