"""
errors.py — Domain errors raised by the reporting and assignment core.
"""


class LayoutConfigError(ValueError):
    """Malformed layout configuration (e.g. a non-positive column width)."""


class AssignmentError(Exception):
    """Base class for recoverable teacher-to-class link errors."""

    def __init__(self, teacher_id: str, class_id: str, message: str):
        super().__init__(message)
        self.teacher_id = teacher_id
        self.class_id = class_id


class DuplicateAssignment(AssignmentError):
    def __init__(self, teacher_id: str, class_id: str):
        super().__init__(teacher_id, class_id, "Link already exists")


class AssignmentNotFound(AssignmentError):
    def __init__(self, teacher_id: str, class_id: str):
        super().__init__(teacher_id, class_id, "Link not found")


class ReconciliationFailed(Exception):
    """Applying a reconciliation plan failed and was rolled back."""

    def __init__(self, teacher_id: str):
        super().__init__(f"Could not update class links for teacher '{teacher_id}'")
        self.teacher_id = teacher_id
