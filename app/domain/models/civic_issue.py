"""Civic issue directory — city → department → category lookup."""

from sqlalchemy import Column, Integer, String

from app.infrastructure.database import Base


class CivicIssue(Base):
    __tablename__ = "civic_issues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    city = Column(String(200), nullable=False, index=True)
    department = Column(String(200), nullable=False, index=True)
    category = Column(String(200), nullable=False)
    higher_authority = Column(String(300), nullable=True)  # escalation contact
    status = Column(String(20), nullable=False, default="active")

    def __repr__(self):
        return f"<CivicIssue {self.city}/{self.department}/{self.category}>"
