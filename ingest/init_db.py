# ingest/init_db.py
"""Create (or bring up to date) the menu database. Usage: python -m ingest.init_db"""
import sqlite3
from pathlib import Path

from ingest import repository

# ----------------------------
# Build / Migrate
# ----------------------------

def init_db(path: Path = None) -> Path:
    """Create the DB file and schema if missing; idempotent."""
    db_path = Path(path or repository.DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    existed = db_path.exists()
    conn = sqlite3.connect(db_path)
    try:
        repository.ensure_schema(conn)
    finally:
        conn.close()
    action = "Migrated existing" if existed else "Created"
    print(f"[menu-ingest] {action} DB: {db_path}")
    return db_path

# ----------------------------
# CLI entry
# ----------------------------

def main() -> None:
    db_path = init_db()
    print("[menu-ingest] DB ready.")
    print(f"[menu-ingest] Location: {db_path}")

if __name__ == "__main__":
    main()
