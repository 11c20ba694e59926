from __future__ import annotations
import pytest
from fastapi.testclient import TestClient

from ielts_api.main import create_app
from ielts_api.rate_limit import SlidingWindowLimiter
from ielts_api.service import PracticeTestService


class FakeOpenAIClient:
	"""Scripted stand-in for OpenAIClient; queued replies may be exceptions."""

	def __init__(self) -> None:
		self.chat_replies: list = []
		self.transcripts: list = []
		self.chat_calls: list = []
		self.transcribe_calls: list = []
		self.closed = False

	async def chat(self, messages, *, temperature=None, max_tokens=None):
		self.chat_calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
		reply = self.chat_replies.pop(0) if self.chat_replies else ""
		if isinstance(reply, Exception):
			raise reply
		return reply

	async def transcribe(self, audio, *, filename="upload.wav", content_type="application/octet-stream"):
		self.transcribe_calls.append({"audio": audio, "filename": filename, "content_type": content_type})
		reply = self.transcripts.pop(0) if self.transcripts else ""
		if isinstance(reply, Exception):
			raise reply
		return reply

	async def aclose(self):
		self.closed = True


class FakeClock:
	def __init__(self, start: float = 1_700_000_000.0) -> None:
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


@pytest.fixture
def fake_client():
	return FakeOpenAIClient()


@pytest.fixture
def clock():
	return FakeClock()


@pytest.fixture
def limiter(clock):
	return SlidingWindowLimiter(5, 24 * 60 * 60, clock=clock)


@pytest.fixture
def service(fake_client, limiter):
	return PracticeTestService(fake_client, limiter=limiter, site_base="https://ielts.example.com")


@pytest.fixture
def api(service):
	app = create_app(service=service)
	with TestClient(app, raise_server_exceptions=False) as c:
		yield c
