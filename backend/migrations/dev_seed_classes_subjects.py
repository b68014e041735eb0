from __future__ import annotations

"""Seed a small class/subject catalogue for local development.

Skips rows that already exist (matched by name, and section for classes).

Run:
  python -m migrations.dev_seed_classes_subjects --yes
"""

import argparse
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select

from core.database import SessionLocal
from models.school_class import SchoolClass
from models.subject import Subject


GRADES = ["6", "7", "8", "9", "10"]
SECTIONS = ["a", "b"]
SUBJECTS = ["English", "Hindi", "Mathematics", "Science", "Social Studies", "Computer Science"]


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--yes", action="store_true", help="Actually write rows")
    args = parser.parse_args()

    wanted_classes = [(g, s) for g in GRADES for s in SECTIONS]
    if not args.yes:
        print(f"Dry run: would ensure {len(wanted_classes)} classes and {len(SUBJECTS)} subjects.")
        return

    db = SessionLocal()
    try:
        existing_classes = {(c.name, c.section) for c in db.execute(select(SchoolClass)).scalars().all()}
        existing_subjects = {s.name for s in db.execute(select(Subject)).scalars().all()}

        added_classes = 0
        for name, section in wanted_classes:
            if (name, section) not in existing_classes:
                db.add(SchoolClass(name=name, section=section))
                added_classes += 1

        added_subjects = 0
        for name in SUBJECTS:
            if name not in existing_subjects:
                db.add(Subject(name=name))
                added_subjects += 1

        db.commit()
    finally:
        db.close()

    print(f"OK: added {added_classes} classes, {added_subjects} subjects.")


if __name__ == "__main__":
    main()
