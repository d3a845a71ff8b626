#!/usr/bin/env python3
"""
Print the contents of the activity history database: users, activities,
counts per type, the five most recent activities and table sizes.
"""

import sys
from typing import Dict, List

import psycopg2

from db import database


def print_table(rows: List[Dict]):
    if not rows:
        print("  (no rows)")
        return
    columns = list(rows[0].keys())
    widths = {c: max(len(c), *(len(str(row[c])) for row in rows)) for c in columns}
    print("  " + " | ".join(c.ljust(widths[c]) for c in columns))
    print("  " + "-+-".join("-" * widths[c] for c in columns))
    for row in rows:
        print("  " + " | ".join(str(row[c]).ljust(widths[c]) for c in columns))


def view_database():
    print("🔍 Viewing database contents...\n")

    print("👥 USERS:")
    print_table(database.query("SELECT * FROM users ORDER BY created_at DESC"))

    print("\n📊 ACTIVITIES:")
    print_table(database.query("""
        SELECT a.id, u.email, a.type, a.title, a.status, a.duration, a.created_at
        FROM activities a
        JOIN users u ON a.user_id = u.id
        ORDER BY a.created_at DESC
    """))

    print("\n📈 ACTIVITY COUNTS BY TYPE:")
    print_table(database.query("""
        SELECT
            type,
            COUNT(*) AS count,
            COUNT(CASE WHEN status = 'completed' THEN 1 END) AS completed,
            COUNT(CASE WHEN status = 'failed' THEN 1 END) AS failed
        FROM activities
        GROUP BY type
        ORDER BY count DESC
    """))

    print("\n⏰ RECENT ACTIVITIES (Last 5):")
    recent = database.query("""
        SELECT u.email, a.type, a.title, a.status, a.created_at
        FROM activities a
        JOIN users u ON a.user_id = u.id
        ORDER BY a.created_at DESC
        LIMIT 5
    """)
    for index, activity in enumerate(recent, 1):
        print(f"{index}. {activity['email']} - {activity['type']} - {activity['title']} ({activity['status']})")

    print("\n💾 DATABASE SIZE:")
    print_table(database.query("""
        SELECT
            schemaname,
            tablename,
            pg_size_pretty(pg_total_relation_size(schemaname||'.'||tablename)) AS size
        FROM pg_tables
        WHERE schemaname = 'public'
        ORDER BY pg_total_relation_size(schemaname||'.'||tablename) DESC
    """))


def main():
    if not database.is_configured():
        print("❌ DATABASE_URL is not set")
        sys.exit(1)
    try:
        view_database()
    except psycopg2.Error as e:
        print(f"❌ Error viewing database: {e}")
        sys.exit(1)
    finally:
        database.close()


if __name__ == "__main__":
    main()
