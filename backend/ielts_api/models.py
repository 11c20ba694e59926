from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field


DEFAULT_LEVEL = "ielts-6"

OrderStatus = Literal["ready", "graded"]


def utc_now_iso(now: Optional[datetime] = None) -> str:
	# Millisecond precision with a Z suffix, e.g. 2024-05-01T10:00:00.000Z
	moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
	return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# TESTS
# ============================================================================

class _Frozen(BaseModel):
	model_config = ConfigDict(frozen=True)


class WritingQuestion(_Frozen):
	id: str
	title: str
	prompt: str


class SpeakingItem(_Frozen):
	id: str
	q: str


class SpeakingPart(_Frozen):
	part: int
	items: Optional[Tuple[SpeakingItem, ...]] = None
	cue: Optional[str] = None
	prep_time: Optional[int] = None
	speak_time: Optional[int] = None


class WritingTest(_Frozen):
	test_id: str
	type: Literal["writing"] = "writing"
	level: str
	questions: Tuple[WritingQuestion, ...]


class SpeakingTest(_Frozen):
	test_id: str
	type: Literal["speaking"] = "speaking"
	level: str
	parts: Tuple[SpeakingPart, ...]


class GenericTest(_Frozen):
	"""Empty stub for test types without a generator."""
	test_id: str
	type: str
	level: str
	questions: Tuple[WritingQuestion, ...] = ()


Test = Union[WritingTest, SpeakingTest, GenericTest]


def dump_test(test: Test) -> Dict[str, Any]:
	return test.model_dump(mode="json", exclude_none=True)


class GenerationResult(BaseModel):
	"""Outcome of a generation call; ``fallback_used`` marks canned content."""
	test: Test
	fallback_used: bool = False
	reason: Optional[str] = None


# ============================================================================
# ORDERS AND JOBS
# ============================================================================

class Order(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	order_id: str = Field(alias="orderId")
	test_id: str = Field(alias="testId")
	test: Test
	status: OrderStatus = "ready"
	created_at: str = Field(alias="createdAt")
	type: str
	level: str
	test_url: str = Field(alias="testUrl")
	fallback_used: bool = Field(default=False, alias="fallbackUsed")


class Answer(BaseModel):
	# Clients send question ids as strings or numbers; only answerText is graded
	model_config = ConfigDict(populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

	question_id: Optional[str] = Field(default=None, alias="questionId")
	answer_text: Optional[str] = Field(default=None, alias="answerText")


class Job(BaseModel):
	model_config = ConfigDict(populate_by_name=True, frozen=True)

	job_id: str = Field(alias="jobId")
	test_id: str = Field(alias="testId")
	type: str
	answers: Optional[Tuple[Answer, ...]] = None
	transcript: Optional[str] = None
	result: Dict[str, Any]
	created_at: str = Field(alias="createdAt")

	def to_public(self) -> Dict[str, Any]:
		data = self.model_dump(mode="json", by_alias=True)
		# Writing jobs carry answers, speaking jobs carry a transcript
		if self.answers is None:
			data.pop("answers", None)
		if self.transcript is None:
			data.pop("transcript", None)
		return data


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class OrderTestRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	test_type: Optional[str] = Field(default=None, alias="testType")
	level: Optional[str] = None
	num_tasks: Optional[int] = Field(default=None, alias="numTasks")


class OrderTestResponse(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	ok: bool = True
	order_id: str = Field(alias="orderId")
	test_id: str = Field(alias="testId")
	test_url: str = Field(alias="testUrl")


class SubmitAnswersRequest(BaseModel):
	answers: List[Answer] = Field(default_factory=list)


class OrderSummary(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	order_id: str = Field(alias="orderId")
	test_id: str = Field(alias="testId")
	type: str
	level: str
	status: OrderStatus
	created_at: str = Field(alias="createdAt")
	test_url: str = Field(alias="testUrl")
