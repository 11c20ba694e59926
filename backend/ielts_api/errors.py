from __future__ import annotations


class ServiceError(Exception):
	"""Base error for failures that map onto an HTTP status."""

	status_code: int = 500

	def __init__(self, message: str, *, status_code: int | None = None) -> None:
		super().__init__(message)
		self.message = message
		if status_code is not None:
			self.status_code = status_code


class InvalidRequest(ServiceError):
	status_code = 400


class NotFound(ServiceError):
	status_code = 404


class QuotaExceeded(ServiceError):
	status_code = 429

	def __init__(self, message: str, *, retry_after: float = 0.0) -> None:
		super().__init__(message)
		self.retry_after = retry_after


class UpstreamError(ServiceError):
	"""The chat-completion or transcription endpoint failed."""

	status_code = 500
