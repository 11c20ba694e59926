from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .models import Answer, Test

logger = logging.getLogger(__name__)


class GradingClient(Protocol):
	async def chat(self, messages: List[Dict[str, str]], *, temperature: Optional[float] = None, max_tokens: Optional[int] = None) -> str:
		...

	async def transcribe(self, audio: bytes, *, filename: str = "upload.wav", content_type: str = "application/octet-stream") -> str:
		...


SPEAKING_SYSTEM_PROMPT = (
	"You are an experienced IELTS speaking examiner. Given the transcript, return ONLY valid JSON:\n"
	'{"estimated_overall_band": float, "band_by_criteria":{"fluency":float,"lexical":float,"grammar":float,"pronunciation":float}, '
	'"short_feedback":"...", "strengths":[...], "weaknesses":[...], "recommended_actionable_tips":[...], "confidence": float }'
)

WRITING_SYSTEM_PROMPT = (
	"You are an experienced IELTS writing examiner. Given the prompt and the essay, return ONLY valid JSON:\n"
	'{"estimated_overall_band": float, "band_by_criteria": {"task": float, "cohesion": float, "lexical": float, "grammar": float}, '
	'"short_feedback":"...", "strengths":[...], "weaknesses":[...], "recommended_actionable_tips":[...], "confidence": float }'
)


def parse_grading(text: str) -> Dict[str, Any]:
	"""Parse the examiner reply; anything but a JSON object is kept verbatim under ``raw``."""
	try:
		data = json.loads(text)
	except Exception:
		return {"raw": text}
	if not isinstance(data, dict):
		return {"raw": text}
	return data


def essay_from_answers(answers: Sequence[Answer]) -> str:
	if not answers:
		return ""
	return answers[0].answer_text or ""


def first_prompt(test: Test) -> str:
	questions = getattr(test, "questions", None) or ()
	return questions[0].prompt if questions else ""


async def grade_writing(client: GradingClient, test: Test, answers: Sequence[Answer]) -> Dict[str, Any]:
	essay = essay_from_answers(answers)
	user_content = f"Prompt:\n{first_prompt(test)}\n\nEssay:\n{essay}"
	reply = await client.chat([
		{"role": "system", "content": WRITING_SYSTEM_PROMPT},
		{"role": "user", "content": user_content},
	])
	result = parse_grading(reply)
	if "raw" in result and len(result) == 1:
		logger.warning("Writing grade for %s was not JSON; storing raw reply", test.test_id)
	return result


async def transcribe_audio(client: GradingClient, audio: bytes, *, content_type: Optional[str] = None) -> str:
	return await client.transcribe(audio, filename="upload.wav", content_type=content_type or "application/octet-stream")


async def grade_speaking(client: GradingClient, test: Test, transcript: str) -> Dict[str, Any]:
	reply = await client.chat([
		{"role": "system", "content": SPEAKING_SYSTEM_PROMPT},
		{"role": "user", "content": f"Transcript:\n\n{transcript}"},
	])
	result = parse_grading(reply)
	if "raw" in result and len(result) == 1:
		logger.warning("Speaking grade for %s was not JSON; storing raw reply", test.test_id)
	return result
