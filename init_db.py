#!/usr/bin/env python3
"""
Create the activity history tables in the database named by DATABASE_URL.

Run:
  python init_db.py
"""

import sys

import psycopg2

from db import SCHEMA_STATEMENTS, database


def main():
    if not database.is_configured():
        print("❌ DATABASE_URL is not set")
        sys.exit(1)

    print("🚀 Initializing database...")
    try:
        database.init_schema()
    except psycopg2.Error as e:
        print(f"❌ Failed to initialize database: {e}")
        sys.exit(1)
    finally:
        database.close()

    print(f"✅ Database initialized successfully ({len(SCHEMA_STATEMENTS)} tables ensured)")


if __name__ == "__main__":
    main()
