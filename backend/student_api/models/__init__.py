from student_api.models.student import Student

__all__ = ["Student"]
