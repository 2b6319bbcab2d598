
import csv
import sys
import os

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.infrastructure.database import SessionLocal, Base, engine
from app.domain.models.civic_issue import CivicIssue


def seed(path):
    """Load city/department/category rows from a CSV with those headers (+ optional higher_authority)."""
    print(f"Seeding civic_issues from {path}...")
    Base.metadata.create_all(bind=engine, tables=[CivicIssue.__table__])
    db = SessionLocal()
    try:
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))

        added = 0
        for row in rows:
            city = (row.get("city") or "").strip()
            department = (row.get("department") or "").strip()
            category = (row.get("category") or "").strip()
            if not city or not department or not category:
                continue

            exists = db.query(CivicIssue).filter(
                CivicIssue.city == city,
                CivicIssue.department == department,
                CivicIssue.category == category,
            ).first()
            if exists:
                continue

            db.add(CivicIssue(
                city=city,
                department=department,
                category=category,
                higher_authority=(row.get("higher_authority") or "").strip() or None,
            ))
            added += 1

        db.commit()
        print(f"Seed successful: {added} new rows ({len(rows)} read).")

    except Exception as e:
        print(f"Seed failed: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/seed_civic_issues.py civic_issues.csv")
        sys.exit(1)
    seed(sys.argv[1])
