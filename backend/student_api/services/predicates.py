"""
Predicate builder - typed query clauses for student reads.

Clauses are plain frozen dataclasses so they can be built and inspected
without a database. compile_clauses() turns them into SQLAlchemy boolean
expressions against a mapped model; describe_operators() reports which
operators a clause list uses, for the "description" field of responses.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import or_

from student_api.errors import InvalidQueryError
from student_api.logging_config import get_logger, log_with_context

logger = get_logger("query")


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any
    operator = "eq"


@dataclass(frozen=True)
class AtLeast:
    field: str
    value: Any
    operator = "gte"


@dataclass(frozen=True)
class OneOf:
    field: str
    values: Tuple[Any, ...]
    operator = "in"


@dataclass(frozen=True)
class AnyOf:
    clauses: Tuple["Clause", ...]
    operator = "or"


@dataclass(frozen=True)
class Matches:
    """Regular-expression match. The pattern is validated on construction."""
    field: str
    pattern: str
    ignore_case: bool = True
    operator = "regex"

    def __post_init__(self):
        try:
            re.compile(self.pattern)
        except re.error as e:
            raise InvalidQueryError("Invalid search pattern '{}': {}".format(self.pattern, e))


Clause = Union[Equals, AtLeast, OneOf, AnyOf, Matches]


def parse_min_marks(value: Optional[str]) -> Optional[int]:
    """Parse the minMarks query value; blank means no threshold."""
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        raise InvalidQueryError("minMarks must be an integer, got '{}'".format(value))


def split_courses(courses: Optional[str]) -> List[str]:
    """Split a comma-separated course list, dropping blank items."""
    if not courses:
        return []
    return [c.strip() for c in courses.split(",") if c.strip()]


def build_student_filter(min_marks: Optional[int] = None,
                         courses: Optional[str] = None,
                         city: Optional[str] = None) -> List[Clause]:
    """
    Build the clause list for the student filter endpoint.

    - min_marks alone: marks >= min_marks
    - courses: course IN (...)
    - city together with min_marks: the marks clause is replaced by
      (city = X) OR (marks >= min_marks); the course clause stays AND-ed
    - city without min_marks adds nothing
    """
    clauses: List[Clause] = []

    marks_clause = AtLeast("marks", min_marks) if min_marks is not None else None
    if marks_clause is not None and not city:
        clauses.append(marks_clause)

    course_list = split_courses(courses)
    if course_list:
        clauses.append(OneOf("course", tuple(course_list)))

    if city and marks_clause is not None:
        clauses.append(AnyOf((Equals("city", city), marks_clause)))

    log_with_context(logger, "DEBUG", "Built student filter",
        extra_data={
            "min_marks": min_marks,
            "courses": course_list,
            "city": city,
            "operators": describe_operators(clauses)
        })
    return clauses


def compile_clause(clause: Clause, model):
    """Compile one clause into a SQLAlchemy expression on ``model``."""
    if isinstance(clause, Equals):
        return getattr(model, clause.field) == clause.value
    if isinstance(clause, AtLeast):
        return getattr(model, clause.field) >= clause.value
    if isinstance(clause, OneOf):
        return getattr(model, clause.field).in_(list(clause.values))
    if isinstance(clause, AnyOf):
        return or_(*(compile_clause(c, model) for c in clause.clauses))
    if isinstance(clause, Matches):
        return getattr(model, clause.field).regexp_match(
            clause.pattern, flags="i" if clause.ignore_case else None)
    raise TypeError("Unsupported clause: {!r}".format(clause))


def compile_clauses(clauses: Sequence[Clause], model) -> list:
    """Compile a clause list; the results are meant to be AND-ed by the caller."""
    return [compile_clause(c, model) for c in clauses]


def _walk(clauses: Iterable[Clause]):
    for clause in clauses:
        yield clause
        if isinstance(clause, AnyOf):
            yield from _walk(clause.clauses)


def describe_operators(clauses: Sequence[Clause]) -> List[str]:
    """Operator names used by ``clauses`` (nested ones included), in first-use order."""
    seen: List[str] = []
    for clause in _walk(clauses):
        if clause.operator not in seen:
            seen.append(clause.operator)
    return seen
