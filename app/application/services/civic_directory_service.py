"""Civic directory — city → department → category lookups from civic_issues."""

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidArgumentException
from app.domain.models.civic_issue import CivicIssue


def list_cities(db: Session) -> List[str]:
    rows = db.query(CivicIssue.city).distinct().filter(CivicIssue.city.isnot(None)).all()
    return sorted(r[0] for r in rows)


def list_departments(db: Session, city: str) -> List[Dict[str, str]]:
    """Departments of a city, one entry per department name."""
    if not city:
        raise InvalidArgumentException("City parameter is required")

    rows = (
        db.query(CivicIssue)
        .filter(CivicIssue.city == city)
        .order_by(CivicIssue.id.asc())
        .all()
    )

    seen = set()
    departments = []
    for row in rows:
        if row.department in seen:
            continue
        seen.add(row.department)
        departments.append({
            "id": row.id,
            "city": row.city,
            "department": row.department,
            "category": row.category,
            "higher_authority": row.higher_authority or "",
            "status": row.status or "active",
        })
    return departments


def list_categories(db: Session, city: str, department: str) -> List[str]:
    if not city or not department:
        raise InvalidArgumentException("City and department parameters are required")

    rows = (
        db.query(CivicIssue.category)
        .distinct()
        .filter(CivicIssue.city == city, CivicIssue.department == department)
        .all()
    )
    return sorted(r[0] for r in rows if r[0])


def find_higher_authority(
    db: Session,
    city: Optional[str],
    department: Optional[str],
    category: Optional[str] = None,
) -> Optional[str]:
    """Escalation contact, most specific match first."""
    if not city or not department:
        return None

    query = db.query(CivicIssue).filter(
        CivicIssue.city == city,
        CivicIssue.department == department,
        CivicIssue.higher_authority.isnot(None),
    )
    if category:
        exact = query.filter(CivicIssue.category == category).first()
        if exact:
            return exact.higher_authority

    fallback = query.first()
    return fallback.higher_authority if fallback else None
