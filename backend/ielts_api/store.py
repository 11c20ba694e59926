from __future__ import annotations
import threading
from typing import Dict, List, Optional
from .models import Job, Order, Test


class MemoryStore:
	"""Process-lifetime storage for tests, orders and graded jobs.

	Entries are never evicted. Every operation runs under one lock so the store
	can be shared between the event loop and threadpool handlers.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._tests: Dict[str, Test] = {}
		self._orders: Dict[str, Order] = {}
		self._jobs: Dict[str, Job] = {}

	def put_test(self, test: Test) -> None:
		with self._lock:
			if test.test_id in self._tests:
				raise KeyError(f"test {test.test_id} already stored")
			self._tests[test.test_id] = test

	def get_test(self, test_id: str) -> Optional[Test]:
		with self._lock:
			return self._tests.get(test_id)

	def put_order(self, order: Order) -> None:
		with self._lock:
			self._orders[order.order_id] = order

	def get_order(self, order_id: str) -> Optional[Order]:
		with self._lock:
			return self._orders.get(order_id)

	def list_orders(self) -> List[Order]:
		with self._lock:
			return list(self._orders.values())

	def mark_orders_graded(self, test_id: str) -> int:
		"""Move every ready order for ``test_id`` to graded; returns how many changed."""
		changed = 0
		with self._lock:
			for order_id, order in self._orders.items():
				if order.test_id == test_id and order.status != "graded":
					self._orders[order_id] = order.model_copy(update={"status": "graded"})
					changed += 1
		return changed

	def put_job(self, job: Job) -> None:
		with self._lock:
			if job.job_id in self._jobs:
				raise KeyError(f"job {job.job_id} already stored")
			self._jobs[job.job_id] = job

	def get_job(self, job_id: str) -> Optional[Job]:
		with self._lock:
			return self._jobs.get(job_id)

	def job_count(self) -> int:
		with self._lock:
			return len(self._jobs)
