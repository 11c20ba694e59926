from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

from . import grading
from .errors import InvalidRequest, NotFound, QuotaExceeded
from .generator import PracticeTestGenerator
from .models import (
	DEFAULT_LEVEL,
	Answer,
	Job,
	Order,
	OrderSummary,
	Test,
	dump_test,
	utc_now_iso,
)
from .rate_limit import SlidingWindowLimiter
from .store import MemoryStore

logger = logging.getLogger(__name__)


def build_test_url(site_base: str, test_id: str) -> str:
	base = (site_base or "").rstrip("/")
	return f"{base}/?testId={quote(test_id, safe='')}"


class PracticeTestService:
	"""Orders, serves and grades practice tests.

	All state lives in the injected ``MemoryStore``; the limiter only guards
	test generation.
	"""

	def __init__(
		self,
		client: grading.GradingClient,
		*,
		store: Optional[MemoryStore] = None,
		limiter: Optional[SlidingWindowLimiter] = None,
		site_base: str = "",
		max_writing_tasks: int = 5,
		max_audio_bytes: int = 30 * 1024 * 1024,
		now: Optional[Callable[[], datetime]] = None,
	) -> None:
		self.client = client
		self.store = store or MemoryStore()
		self.limiter = limiter or SlidingWindowLimiter()
		self.generator = PracticeTestGenerator(client)
		self.site_base = site_base
		self.max_writing_tasks = max_writing_tasks
		self.max_audio_bytes = max_audio_bytes
		self._now = now

	def _timestamp(self) -> str:
		return utc_now_iso(self._now() if self._now else None)

	def test_url(self, test_id: str) -> str:
		return build_test_url(self.site_base, test_id)

	async def order_test(
		self,
		test_type: Optional[str],
		level: Optional[str] = None,
		num_tasks: Optional[int] = None,
		*,
		client_id: str = "guest",
	) -> Dict[str, str]:
		if not test_type:
			raise InvalidRequest("testType required")
		# 0 and missing both mean the default of one task
		num_tasks = num_tasks or 1
		if num_tasks < 1 or num_tasks > self.max_writing_tasks:
			raise InvalidRequest(f"numTasks must be between 1 and {self.max_writing_tasks}")
		level = level or DEFAULT_LEVEL

		if not self.limiter.allow(client_id):
			logger.info("Rate limit hit for client %s", client_id)
			raise QuotaExceeded(
				f"Rate limit: max {self.limiter.max_requests} free tests/day",
				retry_after=self.limiter.retry_after(client_id),
			)

		order_id = str(uuid.uuid4())
		generated = await self.generator.generate(test_type, level, num_tasks)
		test = generated.test
		self.store.put_test(test)
		test_url = self.test_url(test.test_id)
		self.store.put_order(Order(
			order_id=order_id,
			test_id=test.test_id,
			test=test,
			status="ready",
			created_at=self._timestamp(),
			type=test_type,
			level=level,
			test_url=test_url,
			fallback_used=generated.fallback_used,
		))
		logger.info("Order %s created for %s test %s (fallback=%s)", order_id, test_type, test.test_id, generated.fallback_used)
		return {"orderId": order_id, "testId": test.test_id, "testUrl": test_url}

	def list_orders(self) -> List[Dict[str, Any]]:
		return [
			OrderSummary(
				order_id=o.order_id,
				test_id=o.test_id,
				type=o.type,
				level=o.level,
				status=o.status,
				created_at=o.created_at,
				test_url=self.test_url(o.test_id),
			).model_dump(by_alias=True)
			for o in self.store.list_orders()
		]

	def require_test(self, test_id: str) -> Test:
		test = self.store.get_test(test_id)
		if test is None:
			raise NotFound("test not found")
		return test

	def get_test(self, test_id: str) -> Dict[str, Any]:
		return dump_test(self.require_test(test_id))

	def get_job(self, job_id: str) -> Dict[str, Any]:
		job = self.store.get_job(job_id)
		if job is None:
			raise NotFound("job not found")
		return job.to_public()

	async def submit_answers(self, test_id: str, answers: Sequence[Answer]) -> Dict[str, Any]:
		test = self.require_test(test_id)
		if test.type != "writing":
			raise InvalidRequest("Unsupported submission type")
		result = await grading.grade_writing(self.client, test, answers)
		job = Job(
			job_id=str(uuid.uuid4()),
			test_id=test_id,
			type="writing",
			answers=tuple(answers),
			result=result,
			created_at=self._timestamp(),
		)
		return self._complete(job)

	async def submit_audio(self, test_id: str, audio: bytes, *, content_type: Optional[str] = None) -> Dict[str, Any]:
		test = self.require_test(test_id)
		if not audio:
			raise InvalidRequest("audio file is empty")
		if len(audio) > self.max_audio_bytes:
			raise InvalidRequest(f"audio file exceeds {self.max_audio_bytes} bytes")
		# Transcription and grading failures propagate; nothing is stored
		transcript = await grading.transcribe_audio(self.client, audio, content_type=content_type)
		result = await grading.grade_speaking(self.client, test, transcript)
		job = Job(
			job_id=str(uuid.uuid4()),
			test_id=test_id,
			type="speaking",
			transcript=transcript,
			result=result,
			created_at=self._timestamp(),
		)
		return self._complete(job)

	def _complete(self, job: Job) -> Dict[str, Any]:
		self.store.put_job(job)
		graded = self.store.mark_orders_graded(job.test_id)
		logger.info("Job %s graded for test %s (%d orders updated)", job.job_id, job.test_id, graded)
		return {"jobId": job.job_id, "result": job.result}

	def health(self) -> Dict[str, Any]:
		return {"ok": True, "now": self._timestamp()}
