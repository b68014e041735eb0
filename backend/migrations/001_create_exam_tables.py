from __future__ import annotations

"""Create the tables the exam wizard reads from and writes to.

Safe to run multiple times (uses IF NOT EXISTS).

Run:
  python -m migrations.001_create_exam_tables --yes

Or:
  python backend/migrations/001_create_exam_tables.py --yes
"""

import argparse
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import text

from core.database import ENGINE


STATEMENTS = [
    "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
    """
    CREATE TABLE IF NOT EXISTS classes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        section TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS subjects (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS exams (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        exam_date DATE NULL,
        exam_time TEXT NULL,
        max_marks INTEGER NULL CHECK (max_marks IS NULL OR max_marks > 0),
        class_id UUID NULL REFERENCES classes(id) ON DELETE CASCADE,
        subject_id UUID NULL REFERENCES subjects(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    # Older deployments created exams before exam_time existed.
    "ALTER TABLE exams ADD COLUMN IF NOT EXISTS exam_time TEXT;",

    # Schedule views: by session name, by class, by date
    "CREATE INDEX IF NOT EXISTS idx_exams_name ON exams (name);",
    "CREATE INDEX IF NOT EXISTS idx_exams_class_date ON exams (class_id, exam_date);",
    "CREATE INDEX IF NOT EXISTS idx_exams_date ON exams (exam_date);",
    "CREATE INDEX IF NOT EXISTS idx_classes_name_section ON classes (name, section);",
]


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    args = parser.parse_args()

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        for s in STATEMENTS:
            print("---")
            print(s.strip())
        return

    with ENGINE.begin() as conn:
        for s in STATEMENTS:
            conn.execute(text(s))

    print(f"OK: applied {len(STATEMENTS)} statements.")


if __name__ == "__main__":
    main()
