"""
Student model - the single entity exposed by the API.

Each student is identified by a store-assigned UUID. The ordered list of
subjects is stored as a JSON array so it can be appended to in place.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Integer, Boolean, JSON, Index
from student_api.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Student(Base):
    """
    SQLAlchemy model for the students table.

    created_at is written once on insert; updated_at is refreshed by the
    ORM on every UPDATE issued for the row.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    name = Column(Text, nullable=False,
                  doc="Student's full name")
    marks = Column(Integer, nullable=False, default=0,
                   doc="Total marks")
    course = Column(Text, nullable=False,
                    doc="Course the student is enrolled in")
    city = Column(Text, nullable=True,
                  doc="Home city")
    subjects = Column(JSON, nullable=False, default=list,
                      doc="Ordered list of subject names")
    enrolled = Column(Boolean, nullable=False, default=False,
                      doc="Whether the student is currently enrolled")
    created_at = Column(DateTime, nullable=False, default=_utcnow,
                        doc="Timestamp when the student record was created")
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow,
                        doc="Timestamp of the last modification")

    __table_args__ = (
        Index("ix_students_course", "course"),
        Index("ix_students_city", "city"),
        Index("ix_students_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', course='{self.course}')>"
