"""
Student API routes - CRUD, filtering, search and aggregation.

Every endpoint issues one store operation and answers with the envelope
{"success": bool, ...}. Failures are turned into {"success": false,
"error": ...} by handle_student_errors.
"""

import time
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from student_api.database import get_db
from student_api.errors import handle_student_errors
from student_api.services import students as student_service
from student_api.services.predicates import build_student_filter, describe_operators, parse_min_marks
from student_api.services.students import serialize_student
from student_api.logging_config import get_logger, log_with_context

router = APIRouter(prefix="/api/v1/students")
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentCreate(BaseModel):
    """Schema for a student in a create request."""
    name: str = Field(..., min_length=1, description="Student's full name")
    marks: int = Field(..., ge=0, description="Total marks")
    course: str = Field(..., min_length=1, description="Course name")
    city: Optional[str] = Field(None, description="Home city")
    subjects: List[str] = Field(default_factory=list, description="Ordered list of subjects")
    enrolled: bool = Field(False, description="Currently enrolled")


class StudentUpdate(BaseModel):
    """Schema for a whole-field update. Only the supplied fields are written."""
    name: Optional[str] = Field(None, min_length=1)
    marks: Optional[int] = Field(None, ge=0)
    course: Optional[str] = Field(None, min_length=1)
    city: Optional[str] = None
    subjects: Optional[List[str]] = None
    enrolled: Optional[bool] = None

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in student_service.REQUIRED_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError("Field '{}' cannot be null".format(field))
        return self


# ── Create ───────────────────────────────────────────────────

@router.post("/create", status_code=status.HTTP_201_CREATED)
@handle_student_errors(fallback_status=status.HTTP_400_BAD_REQUEST)
def create_student(payload: StudentCreate, db: Session = Depends(get_db)):
    """Create a single student."""
    student = student_service.create_student(db, payload.model_dump())
    return {"success": True, "data": serialize_student(student)}


@router.post("/create/bulk", status_code=status.HTTP_201_CREATED)
@handle_student_errors(fallback_status=status.HTTP_400_BAD_REQUEST)
def create_students_bulk(payload: List[StudentCreate] = Body(...), db: Session = Depends(get_db)):
    """Create many students in one request; the batch is rejected if any item is invalid."""
    start_time = time.time()
    students = student_service.create_students(db, [p.model_dump() for p in payload])

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Bulk insert of {} students".format(len(students)),
                     extra_data={"duration_ms": round(duration_ms, 2)})
    return {
        "success": True,
        "count": len(students),
        "data": [serialize_student(s) for s in students]
    }


# ── Read ─────────────────────────────────────────────────────

@router.get("/get")
@handle_student_errors()
def list_students(db: Session = Depends(get_db)):
    """List every student, newest first."""
    students = student_service.list_students(db)
    return {
        "success": True,
        "count": len(students),
        "data": [serialize_student(s) for s in students]
    }


@router.get("/get/{student_id}")
@handle_student_errors()
def get_student(student_id: str, db: Session = Depends(get_db)):
    """Get one student by id."""
    student = student_service.get_student(db, student_id)
    return {"success": True, "data": serialize_student(student)}


@router.get("/filter")
@handle_student_errors()
def filter_students(
    min_marks: Optional[str] = Query(None, alias="minMarks", description="Minimum marks (inclusive); blank means no threshold"),
    courses: Optional[str] = Query(None, description="Comma-separated course names"),
    city: Optional[str] = Query(None, description="City; OR-ed with minMarks when both are given"),
    db: Session = Depends(get_db)
):
    """Filter students by marks threshold, course membership and city."""
    clauses = build_student_filter(min_marks=parse_min_marks(min_marks), courses=courses, city=city)
    students = student_service.find_students(db, clauses)

    operators = describe_operators(clauses)
    if operators:
        description = "Filtered students using {} operators".format(", ".join(operators))
    else:
        description = "No filters given, returning all students"

    return {
        "success": True,
        "description": description,
        "count": len(students),
        "data": [serialize_student(s) for s in students]
    }


@router.get("/search/{name}")
@handle_student_errors()
def search_students(name: str, db: Session = Depends(get_db)):
    """Case-insensitive pattern search on student names."""
    students = student_service.search_students_by_name(db, name)
    return {
        "success": True,
        "description": "Students matching '{}' (case-insensitive)".format(name),
        "count": len(students),
        "data": [serialize_student(s) for s in students]
    }


# ── Update ───────────────────────────────────────────────────

@router.put("/update/{student_id}")
@handle_student_errors(fallback_status=status.HTTP_400_BAD_REQUEST)
def update_student(student_id: str, payload: Optional[StudentUpdate] = Body(None),
                   db: Session = Depends(get_db)):
    """Set the supplied fields on a student. A missing body changes nothing."""
    changes = payload.model_dump(exclude_unset=True) if payload is not None else {}
    student = student_service.update_student(db, student_id, changes)
    return {"success": True, "data": serialize_student(student)}


@router.put("/update/{student_id}/operators")
@handle_student_errors(fallback_status=status.HTTP_400_BAD_REQUEST)
def update_student_with_operators(student_id: str, db: Session = Depends(get_db)):
    """Add 5 marks, append "AI" to subjects and mark the student enrolled."""
    student = student_service.apply_operator_update(db, student_id)
    return {
        "success": True,
        "description": "Updated using inc, push, set operators",
        "data": serialize_student(student)
    }


# ── Delete ───────────────────────────────────────────────────

@router.delete("/delete/{student_id}")
@handle_student_errors()
def delete_student(student_id: str, db: Session = Depends(get_db)):
    """Delete a student by id."""
    snapshot = student_service.delete_student(db, student_id)
    return {
        "success": True,
        "message": "Student deleted successfully",
        "data": snapshot
    }


# ── Aggregation ──────────────────────────────────────────────

@router.get("/stats")
@handle_student_errors()
def course_stats(db: Session = Depends(get_db)):
    """Per-course statistics sorted by average marks, highest first."""
    stats = student_service.course_statistics(db)
    return {
        "success": True,
        "description": "Course-wise statistics using group, count, avg, max, min",
        "count": len(stats),
        "data": stats
    }
