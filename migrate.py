"""Schema setup helper
Creates the user, riderequest and vote tables if they are missing and
reports what the database now holds.
Run: python migrate.py
"""
from sqlalchemy import inspect

import db


def main():
    db.init_db()
    tables = sorted(inspect(db.engine).get_table_names())
    print(f"Database initialized ({db.DATABASE_URL}): {', '.join(tables)}")


if __name__ == "__main__":
    main()
