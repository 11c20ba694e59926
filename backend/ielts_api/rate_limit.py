from __future__ import annotations
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional


class SlidingWindowLimiter:
	"""Per-client cap of ``max_requests`` within a trailing ``window_seconds``.

	Pruning, counting and recording happen in one critical section, so two
	concurrent requests can never both take the last free slot.
	"""

	def __init__(
		self,
		max_requests: int = 5,
		window_seconds: float = 24 * 60 * 60,
		*,
		clock: Callable[[], float] = time.time,
	) -> None:
		if max_requests < 1:
			raise ValueError("max_requests must be at least 1")
		if window_seconds <= 0:
			raise ValueError("window_seconds must be positive")
		self.max_requests = max_requests
		self.window_seconds = float(window_seconds)
		self._clock = clock
		self._lock = threading.Lock()
		self._buckets: Dict[str, Deque[float]] = {}

	def _pruned(self, client_id: str, now: float) -> Optional[Deque[float]]:
		# Caller holds the lock; emptied buckets are dropped so idle clients cost nothing
		bucket = self._buckets.get(client_id)
		if bucket is None:
			return None
		while bucket and now - bucket[0] >= self.window_seconds:
			bucket.popleft()
		if not bucket:
			del self._buckets[client_id]
			return None
		return bucket

	def allow(self, client_id: str) -> bool:
		"""Record a request for ``client_id`` if it fits in the window.

		Rejected attempts are not recorded.
		"""
		now = self._clock()
		with self._lock:
			bucket = self._pruned(client_id, now)
			if bucket is None:
				self._buckets[client_id] = deque([now])
				return True
			if len(bucket) >= self.max_requests:
				return False
			bucket.append(now)
			return True

	def remaining(self, client_id: str) -> int:
		now = self._clock()
		with self._lock:
			bucket = self._pruned(client_id, now)
			return self.max_requests - len(bucket) if bucket else self.max_requests

	def retry_after(self, client_id: str) -> float:
		"""Seconds until a slot frees up for ``client_id`` (0 when one is free)."""
		now = self._clock()
		with self._lock:
			bucket = self._pruned(client_id, now)
			if bucket is None or len(bucket) < self.max_requests:
				return 0.0
			return max(0.0, bucket[0] + self.window_seconds - now)

	def tracked_clients(self) -> int:
		with self._lock:
			return len(self._buckets)
