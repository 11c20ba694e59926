"""
Test Generator
==============

Builds IELTS practice tests. Writing tests are written by the chat model;
speaking tests use a fixed three-part structure; any other type becomes an
empty stub.

Writing generation never raises: an upstream failure or an unusable reply is
replaced by a canned one-question test, and the returned ``GenerationResult``
records that the fallback was used.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .models import (
	DEFAULT_LEVEL,
	GenerationResult,
	GenericTest,
	SpeakingItem,
	SpeakingPart,
	SpeakingTest,
	Test,
	WritingQuestion,
	WritingTest,
)

logger = logging.getLogger(__name__)


FALLBACK_WRITING_PROMPT = "Write an essay (250+ words) on: The benefits of online education."


class ChatClient(Protocol):
	async def chat(self, messages: List[Dict[str, str]], *, temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> str:
		...


def new_test_id() -> str:
	return str(uuid.uuid4())


def _extract_json_block(text: str) -> Dict[str, Any]:
	"""Parse a JSON object from model output, tolerating surrounding prose or code fences."""
	try:
		data = json.loads(text)
	except Exception:
		data = None
		match = re.search(r"\{[\s\S]*\}", text or "")
		if match:
			try:
				data = json.loads(match.group(0))
			except Exception:
				data = None
	if not isinstance(data, dict):
		raise ValueError("Failed to parse JSON object from model output")
	return data


def _build_writing_prompt(test_id: str, level: str, num_tasks: int) -> str:
	example = json.dumps({
		"test_id": test_id,
		"type": "writing",
		"level": level,
		"questions": [{"id": "q1", "title": "Task 2", "prompt": "..."}],
	})
	return (
		f"You are an expert IELTS writer. Create {num_tasks} Writing Task 2 prompts suitable for level {level}. "
		"Return ONLY valid JSON like:\n"
		f"{example}"
	)


def _parse_questions(raw_questions: Any, num_tasks: int) -> List[WritingQuestion]:
	if not isinstance(raw_questions, list):
		raise ValueError("questions must be a list")
	questions: List[WritingQuestion] = []
	for i, item in enumerate(raw_questions[:num_tasks], 1):
		if not isinstance(item, dict):
			raise ValueError(f"question {i} is not an object")
		prompt = str(item.get("prompt") or "").strip()
		if not prompt:
			raise ValueError(f"question {i} has no prompt")
		questions.append(WritingQuestion(
			id=str(item.get("id") or f"q{i}"),
			title=str(item.get("title") or "Task 2"),
			prompt=prompt,
		))
	if not questions:
		raise ValueError("model returned no questions")
	return questions


def fallback_writing_test(test_id: str, level: str) -> WritingTest:
	return WritingTest(
		test_id=test_id,
		level=level,
		questions=(WritingQuestion(id="q1", title="Task 2", prompt=FALLBACK_WRITING_PROMPT),),
	)


def speaking_test(test_id: str, level: str) -> SpeakingTest:
	return SpeakingTest(
		test_id=test_id,
		level=level,
		parts=(
			SpeakingPart(part=1, items=(
				SpeakingItem(id="p1q1", q="What is your full name?"),
				SpeakingItem(id="p1q2", q="Where are you from?"),
			)),
			SpeakingPart(part=2, cue="Describe a memorable trip you had.", prep_time=60, speak_time=120),
			SpeakingPart(part=3, items=(
				SpeakingItem(id="p3q1", q="Why do people travel?"),
			)),
		),
	)


class PracticeTestGenerator:
	def __init__(self, client: ChatClient) -> None:
		self.client = client

	@staticmethod
	def _fallback(test_id: str, level: str, reason: str) -> GenerationResult:
		return GenerationResult(test=fallback_writing_test(test_id, level), fallback_used=True, reason=reason)

	async def generate(self, test_type: str, level: str = DEFAULT_LEVEL, num_tasks: int = 1) -> GenerationResult:
		# Identifiers are always minted here; ids echoed by the model are ignored
		test_id = new_test_id()
		if test_type == "writing":
			return await self._generate_writing(test_id, level, num_tasks)
		if test_type == "speaking":
			return GenerationResult(test=speaking_test(test_id, level))
		return GenerationResult(test=GenericTest(test_id=test_id, type=test_type, level=level))

	async def _generate_writing(self, test_id: str, level: str, num_tasks: int) -> GenerationResult:
		messages = [
			{"role": "system", "content": _build_writing_prompt(test_id, level, num_tasks)},
			{"role": "user", "content": "Return JSON only."},
		]
		try:
			raw = await self.client.chat(messages, temperature=0.0)
		except Exception as err:
			logger.warning("Writing generation call failed, using fallback: %s", err)
			return self._fallback(test_id, level, f"generation call failed: {err}")
		try:
			data = _extract_json_block(raw)
			questions = _parse_questions(data.get("questions"), num_tasks)
			test: Test = WritingTest(test_id=test_id, level=level, questions=tuple(questions))
		except (ValueError, ValidationError) as err:
			logger.warning("Writing generation returned unusable output, using fallback: %s", err)
			return self._fallback(test_id, level, f"unusable model output: {err}")
		if len(questions) < num_tasks:
			logger.info("Model returned %d of %d requested writing tasks", len(questions), num_tasks)
		return GenerationResult(test=test)
