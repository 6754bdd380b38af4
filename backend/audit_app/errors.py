from __future__ import annotations
from typing import Any, Dict, Optional


class AuditError(Exception):
	"""Base class for failures surfaced to the user.

	`step` names the pipeline stage that failed (e.g. "analyze", "refine",
	"report") and `section` the section being processed, when there is one.
	"""

	status_code = 500

	def __init__(self, message: str, *, step: Optional[str] = None, section: Optional[str] = None) -> None:
		super().__init__(message)
		self.message = message
		self.step = step
		self.section = section

	def to_dict(self) -> Dict[str, Any]:
		body: Dict[str, Any] = {"error": self.message}
		if self.step:
			body["step"] = self.step
		if self.section:
			body["section"] = self.section
		return body


class ConfigurationError(AuditError):
	"""Required credentials or configuration are missing."""

	status_code = 503


class ValidationError(AuditError):
	"""Caller input was rejected before any external call."""

	status_code = 400


class OracleError(AuditError):
	"""The scoring model failed or returned something we could not use."""

	status_code = 502

	def __init__(self, message: str, *, unreachable: bool = False, **kwargs: Any) -> None:
		super().__init__(message, **kwargs)
		self.unreachable = unreachable


class NotFoundError(AuditError):
	status_code = 404
