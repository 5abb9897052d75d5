"""
Student Service - store operations behind the student endpoints.

Each function issues one unit of work against the session it is given,
commits it if it mutates anything, and returns ORM objects (or plain dicts
for aggregations). Serialization to the API shape is done by
serialize_student().
"""

import time
import uuid
from typing import List, Sequence

from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session

from student_api.errors import StudentNotFoundError, InvalidStudentIdError, InvalidStudentDataError
from student_api.models.student import Student
from student_api.services.predicates import Clause, Matches, compile_clauses
from student_api.logging_config import get_logger, log_with_context

logger = get_logger("db")

# Applied by the operator update endpoint
MARKS_INCREMENT = 5
APPENDED_SUBJECT = "AI"

# Fields a client may set; everything else is store-managed
WRITABLE_FIELDS = ("name", "marks", "course", "city", "subjects", "enrolled")
REQUIRED_FIELDS = ("name", "marks", "course")


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object to a dict for API response."""
    return {
        "id": str(student.id),
        "name": student.name,
        "marks": student.marks,
        "course": student.course,
        "city": student.city,
        "subjects": list(student.subjects or []),
        "enrolled": bool(student.enrolled),
        "created_at": student.created_at.isoformat() if student.created_at else None,
        "updated_at": student.updated_at.isoformat() if student.updated_at else None,
    }


def validate_student_id(student_id: str) -> str:
    """Return the canonical form of ``student_id`` or raise InvalidStudentIdError."""
    try:
        return str(uuid.UUID(student_id))
    except (ValueError, TypeError, AttributeError):
        raise InvalidStudentIdError(student_id)


def _writable(data: dict) -> dict:
    return {k: v for k, v in data.items() if k in WRITABLE_FIELDS}


def create_student(db: Session, data: dict) -> Student:
    """Insert a single student."""
    student = Student(**_writable(data))
    db.add(student)
    db.commit()
    db.refresh(student)

    log_with_context(logger, "INFO", "Created student: {}".format(student.name),
                     context={"student_id": student.id})
    return student


def create_students(db: Session, items: Sequence[dict]) -> List[Student]:
    """Insert a batch of students in one transaction."""
    students = [Student(**_writable(item)) for item in items]
    db.add_all(students)
    db.commit()
    for student in students:
        db.refresh(student)

    log_with_context(logger, "INFO", "Bulk-created {} students".format(len(students)),
                     extra_data={"count": len(students)})
    return students


def list_students(db: Session) -> List[Student]:
    """All students, newest first."""
    return list(db.scalars(select(Student).order_by(Student.created_at.desc())))


def get_student(db: Session, student_id: str) -> Student:
    student = db.get(Student, validate_student_id(student_id))
    if student is None:
        raise StudentNotFoundError(student_id)
    return student


def find_students(db: Session, clauses: Sequence[Clause]) -> List[Student]:
    """Students matching every clause."""
    start_time = time.time()
    stmt = select(Student).where(*compile_clauses(clauses, Student))
    students = list(db.scalars(stmt))

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Query matched {} students".format(len(students)),
                     extra_data={"clauses": len(clauses), "duration_ms": round(duration_ms, 2)})
    return students


def search_students_by_name(db: Session, pattern: str) -> List[Student]:
    """Case-insensitive regular-expression search on the name field."""
    return find_students(db, [Matches("name", pattern)])


def update_student(db: Session, student_id: str, changes: dict) -> Student:
    """Set the supplied fields on a student and return the updated row."""
    student = get_student(db, student_id)

    changes = _writable(changes)
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise InvalidStudentDataError("Field '{}' cannot be null".format(field), student_id)
    if "subjects" in changes and changes["subjects"] is None:
        changes["subjects"] = []
    if "enrolled" in changes and changes["enrolled"] is None:
        changes["enrolled"] = False

    for field, value in changes.items():
        setattr(student, field, value)
    db.commit()
    db.refresh(student)

    log_with_context(logger, "INFO", "Updated student {}".format(student.id),
                     context={"student_id": student.id},
                     extra_data={"fields": sorted(changes)})
    return student


def apply_operator_update(db: Session, student_id: str) -> Student:
    """
    Increment marks, append the fixed subject, and mark the student enrolled.

    The row is locked for the duration of the transaction on databases that
    support SELECT ... FOR UPDATE.
    """
    stmt = select(Student).where(Student.id == validate_student_id(student_id)).with_for_update()
    student = db.scalars(stmt).first()
    if student is None:
        raise StudentNotFoundError(student_id)

    student.marks = (student.marks or 0) + MARKS_INCREMENT
    # Reassign so the JSON column is flagged as modified
    student.subjects = list(student.subjects or []) + [APPENDED_SUBJECT]
    student.enrolled = True
    db.commit()
    db.refresh(student)

    log_with_context(logger, "INFO", "Applied operator update to student {}".format(student.id),
                     context={"student_id": student.id},
                     extra_data={"marks": student.marks, "subjects": len(student.subjects)})
    return student


def delete_student(db: Session, student_id: str) -> dict:
    """Delete a student and return its last serialized state."""
    student = get_student(db, student_id)
    snapshot = serialize_student(student)
    db.delete(student)
    db.commit()

    log_with_context(logger, "INFO", "Deleted student {}".format(snapshot["id"]),
                     context={"student_id": snapshot["id"]})
    return snapshot


def course_statistics(db: Session) -> List[dict]:
    """Per-course count and average/max/min marks, highest average first."""
    average = func.avg(Student.marks).label("average_marks")
    stmt = (
        select(
            Student.course,
            func.count(Student.id).label("total_students"),
            average,
            func.max(Student.marks).label("max_marks"),
            func.min(Student.marks).label("min_marks"),
        )
        .group_by(Student.course)
        .order_by(desc(average))
    )

    stats = [
        {
            "course": row.course,
            "total_students": row.total_students,
            "average_marks": float(row.average_marks) if row.average_marks is not None else None,
            "max_marks": row.max_marks,
            "min_marks": row.min_marks,
        }
        for row in db.execute(stmt)
    ]

    log_with_context(logger, "INFO", "Computed statistics for {} courses".format(len(stats)))
    return stats

