"""Error kinds reported by plan commands."""

from enum import Enum


class ErrorKind(str, Enum):
	NOT_FOUND = "not_found"
	INVALID_TRANSITION = "invalid_transition"
	MISSING_REQUIRED_FIELD = "missing_required_field"
	INCOMPLETE_WORK_CONFLICT = "incomplete_work_conflict"


class PlanError(Exception):
	"""Base class for rejected plan commands."""
	kind: ErrorKind

	def __init__(self, detail: str = ""):
		super().__init__(detail)
		self.detail = detail


class NotFoundError(PlanError):
	"""Raised when a referenced plan, task or action does not exist."""
	kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(PlanError):
	"""Raised when the current status forbids the command."""
	kind = ErrorKind.INVALID_TRANSITION


class MissingRequiredFieldError(PlanError):
	"""Raised when a required command field is empty or not an allowed value."""
	kind = ErrorKind.MISSING_REQUIRED_FIELD


class IncompleteWorkConflictError(PlanError):
	"""Raised when a plan with carry-over is completed as a full completion."""
	kind = ErrorKind.INCOMPLETE_WORK_CONFLICT
