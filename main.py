#!/usr/bin/env python3
"""
OK BRFSS Alcohol Abuse Warehouse

Star-schema warehouse over Oklahoma BRFSS survey data.
Dataset: CDC Behavioral Risk Factor Surveillance System (BRFSS)

Goals:
1. Find the adolescent age groups at highest risk of alcohol abuse
2. Rank Oklahoma cities and counties by adolescent alcohol abuse ratio

Tech Stack: Python, PostgreSQL, SQLAlchemy, pandas

Schema: brfss_survey_fact + question, response, location, breakout
and breakout category dimensions
"""

def main():
    print(__doc__)
    print("\n" + "="*60)
    print("QUICK START")
    print("="*60)
    print("1. createdb ok_brfss_survey     # Target database must exist")
    print("2. python etl.py test           # Test connection")
    print("3. python etl.py                # Stage, build dimensions and facts")
    print("4. python analysis.py           # Age group, city and county reports")
    print("\n Raw Data (data/raw/):")
    print("- OK_BRFSS_Survey.csv  → survey responses")
    print("- Demographics_OK.csv  → Oklahoma zipcode lookup")
    print("- Demographics.csv     → US zipcode lookup")
    print("\n Files:")
    print("- staging.py    → CSV ingestion & staging tables")
    print("- dimensions.py → Dimension tables")
    print("- facts.py      → Fact table & unmatched row audit")
    print("- analysis.py   → Ratio reports & plots")
    print("- config.py     → Settings (BRFSS_DB_URL overrides the database)")

if __name__ == "__main__":
    main()
