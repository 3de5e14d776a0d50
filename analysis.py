#!/usr/bin/env python3
"""
Alcohol abuse prevalence analysis over the BRFSS warehouse

Answers the three project questions: which adolescent age groups, cities
and counties of Oklahoma have the highest and lowest percent of
respondents reporting alcohol abuse.
"""
import logging
from datetime import datetime

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sqlalchemy import create_engine, func, select

from config import PROCESSED_DATA_DIR, DB_CONFIG, AGE_GROUP_CATEGORY, ADOLESCENT_AGE_GROUP
from schema import (
    survey_fact, location_dim, breakout_dim, breakout_category_dim, WAREHOUSE_METADATA
)

logger = logging.getLogger(__name__)

MEASURES = ["total_people_responded", "total_participants", "ratio"]


def safe_ratio(numerator, denominator):
    """Percent of numerator over denominator, 0 when there is nothing to divide by"""
    numerator = 0 if pd.isna(numerator) else numerator
    denominator = 0 if pd.isna(denominator) else denominator
    if denominator > 0:
        return numerator * 100 / denominator
    return 0.0


def _ratio_query(group_columns, age_group=None, by_location=False):
    """
    Build the grouped sums behind every report.

    Facts are always filtered to the "Age Group" breakout category and,
    when age_group is given, to that breakout type as well.
    """
    facts = (
        survey_fact
        .join(breakout_dim, survey_fact.c.break_out_id == breakout_dim.c.break_out_id)
        .join(
            breakout_category_dim,
            survey_fact.c.break_out_category_id == breakout_category_dim.c.break_out_category_id
        )
    )
    if by_location:
        facts = facts.join(location_dim, survey_fact.c.zipcode == location_dim.c.zipcode)

    query = (
        select(
            *group_columns,
            func.sum(func.coalesce(survey_fact.c.data_value, 0)).label("total_people_responded"),
            func.sum(func.coalesce(survey_fact.c.sample_size, 0)).label("total_participants"),
        )
        .select_from(facts)
        .where(breakout_category_dim.c.break_out_category == AGE_GROUP_CATEGORY)
        .group_by(*group_columns)
    )
    if age_group is not None:
        query = query.where(breakout_dim.c.break_out_type == age_group)
    return query


def _run_report(engine, query, key_columns):
    with engine.connect() as conn:
        report = pd.read_sql(query, conn)

    for col in ["total_people_responded", "total_participants"]:
        report[col] = report[col].fillna(0).astype("int64")
    report["ratio"] = [
        float(safe_ratio(n, d))
        for n, d in zip(report["total_people_responded"], report["total_participants"])
    ]
    report = report.sort_values("ratio", ascending=False, kind="mergesort")
    return report[key_columns + MEASURES].reset_index(drop=True)


def age_group_report(engine):
    """Alcohol abuse ratio per age group"""
    query = _ratio_query([breakout_category_dim.c.break_out_category, breakout_dim.c.break_out_type])
    report = _run_report(engine, query, ["break_out_category", "break_out_type"])
    return report.rename(columns={
        "break_out_category": "demographic_group",
        "break_out_type": "age_group",
    })


def city_report(engine, age_group=ADOLESCENT_AGE_GROUP):
    """Adolescent alcohol abuse ratio per city"""
    query = _ratio_query([location_dim.c.city], age_group, by_location=True)
    return _run_report(engine, query, ["city"])


def county_report(engine, age_group=ADOLESCENT_AGE_GROUP):
    """Adolescent alcohol abuse ratio per county"""
    query = _ratio_query([location_dim.c.county], age_group, by_location=True)
    return _run_report(engine, query, ["county"])


def highest_and_lowest(report, n=5):
    """Top and bottom n rows of a ratio-ordered report"""
    highest = report.head(n).reset_index(drop=True)
    lowest = report.tail(n).iloc[::-1].reset_index(drop=True)
    return highest, lowest


def summarize_warehouse(engine):
    """Row counts of every warehouse table"""
    counts = {}
    with engine.connect() as conn:
        for table in WAREHOUSE_METADATA.sorted_tables:
            counts[table.name] = conn.execute(select(func.count()).select_from(table)).scalar_one()
    return counts


def build_reports(engine):
    return {
        "age_group": age_group_report(engine),
        "city": city_report(engine),
        "county": county_report(engine),
    }


def print_report(name, report, n=5):
    """Print the highest and lowest rows of one report"""
    print(f"\n=== {name.upper().replace('_', ' ')} REPORT ===")
    if report.empty:
        print("No matching survey facts")
        return

    key = report.columns[-len(MEASURES) - 1]
    highest, lowest = highest_and_lowest(report, n)
    for label, rows in [("Highest", highest), ("Lowest", lowest)]:
        print(f"\n{label} alcohol abuse ratio:")
        for _, row in rows.iterrows():
            print(f"  {row[key]}: {row['ratio']:.1f}% "
                  f"({row['total_people_responded']:,} of {row['total_participants']:,})")


def save_reports(reports, output_dir=None):
    """Save each report as a timestamped CSV"""
    output_dir = output_dir or PROCESSED_DATA_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    saved = []
    for name, report in reports.items():
        csv_file = output_dir / f"{name}_alcohol_abuse_{timestamp}.csv"
        report.to_csv(csv_file, index=False)
        saved.append(csv_file)
        print(f"Saved to: {csv_file}")
    return saved


def create_report_plots(reports, output_dir=None, n=15, show=False):
    """Bar chart of the highest ratios for each report"""
    output_dir = output_dir or PROCESSED_DATA_DIR
    print("\n=== CREATING REPORT PLOTS ===")

    # Set global style
    plt.style.use('seaborn-v0_8')
    sns.set_palette("husl")

    output_dir.mkdir(parents=True, exist_ok=True)
    plots_created = []

    for i, (name, report) in enumerate(reports.items(), start=1):
        if report.empty:
            continue
        key = report.columns[-len(MEASURES) - 1]
        data = report.head(n)

        plt.figure(figsize=(10, 6))
        colors = plt.cm.viridis(np.linspace(0.2, 0.8, len(data)))
        bars = plt.bar(range(len(data)), data['ratio'], color=colors, edgecolor='black', alpha=0.8)

        title = name.replace('_', ' ').title()
        plt.title(f'Alcohol Abuse Ratio by {title}', fontsize=14, fontweight='bold')
        plt.xlabel(title, fontsize=12)
        plt.ylabel('Respondents Reporting Alcohol Abuse (%)', fontsize=12)
        plt.xticks(range(len(data)), data[key].astype(str), rotation=45, ha='right')
        plt.grid(True, alpha=0.3, axis='y')

        # Add value labels
        for bar in bars:
            plt.text(bar.get_x() + bar.get_width()/2., bar.get_height() + 0.5,
                     f'{bar.get_height():.1f}%', ha='center', va='bottom', fontweight='bold')

        plt.tight_layout()
        plot_file = output_dir / f"{i:02d}_{name}_ratio.png"
        plt.savefig(plot_file, dpi=300, bbox_inches='tight')
        plots_created.append(plot_file.name)
        if show:
            plt.show()
        plt.close()

    print(f"Created {len(plots_created)} plots:")
    for plot in plots_created:
        print(f"  - {plot}")

    return plots_created


def run_analysis(engine=None):
    """Print, save and plot all three reports"""
    print("=== OK BRFSS ALCOHOL ABUSE ANALYSIS ===")
    engine = engine or create_engine(DB_CONFIG)

    print("\nWarehouse row counts:")
    for table_name, count in summarize_warehouse(engine).items():
        print(f"  {table_name}: {count:,}")

    reports = build_reports(engine)
    for name, report in reports.items():
        print_report(name, report)

    save_reports(reports)
    try:
        create_report_plots(reports)
    except Exception as e:
        logger.error(f"Plotting failed: {e}")

    print("\n=== ANALYSIS COMPLETE ===")
    return reports


def create_plots_only(engine=None):
    """Create just the plots without printing the reports"""
    print("=== CREATING PLOTS ONLY ===")
    engine = engine or create_engine(DB_CONFIG)
    plots_created = create_report_plots(build_reports(engine))
    print(f"\n=== PLOTS COMPLETE: {len(plots_created)} files created ===")
    return plots_created


if __name__ == "__main__":
    import sys
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if len(sys.argv) > 1 and sys.argv[1] == "plots":
        create_plots_only()
    else:
        run_analysis()
