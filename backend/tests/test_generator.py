import asyncio
import json

from ielts_api.errors import UpstreamError
from ielts_api.generator import FALLBACK_WRITING_PROMPT, PracticeTestGenerator
from ielts_api.models import GenericTest, SpeakingTest, WritingTest, dump_test


def _generate(client, *args):
	return asyncio.run(PracticeTestGenerator(client).generate(*args))


def test_writing_uses_model_questions(fake_client):
	fake_client.chat_replies.append(json.dumps({
		"test_id": "model-chosen-id",
		"type": "writing",
		"level": "ielts-7",
		"questions": [
			{"id": "q1", "title": "Task 2", "prompt": "Some people think cities should ban cars. Discuss."},
			{"id": "q2", "title": "Task 2", "prompt": "Is tourism good for local communities?"},
		],
	}))
	result = _generate(fake_client, "writing", "ielts-7", 2)

	assert result.fallback_used is False
	assert isinstance(result.test, WritingTest)
	assert [q.prompt for q in result.test.questions] == [
		"Some people think cities should ban cars. Discuss.",
		"Is tourism good for local communities?",
	]
	# The identifier is minted locally, never taken from the model
	assert result.test.test_id != "model-chosen-id"
	assert result.test.level == "ielts-7"

	call = fake_client.chat_calls[0]
	assert call["temperature"] == 0.0
	system = call["messages"][0]
	assert system["role"] == "system"
	assert "Create 2 Writing Task 2 prompts" in system["content"]
	assert result.test.test_id in system["content"]
	assert call["messages"][1] == {"role": "user", "content": "Return JSON only."}


def test_writing_tolerates_code_fences(fake_client):
	fake_client.chat_replies.append('```json\n{"questions": [{"prompt": "Discuss remote work."}]}\n```')
	result = _generate(fake_client, "writing", "ielts-6", 1)
	assert result.fallback_used is False
	assert result.test.questions[0].id == "q1"
	assert result.test.questions[0].title == "Task 2"


def test_writing_drops_extra_questions(fake_client):
	fake_client.chat_replies.append(json.dumps({"questions": [{"prompt": f"Prompt {i}"} for i in range(4)]}))
	result = _generate(fake_client, "writing", "ielts-6", 2)
	assert len(result.test.questions) == 2


def test_writing_falls_back_on_non_json(fake_client):
	fake_client.chat_replies.append("Sure! Here is an essay prompt about climate change.")
	result = _generate(fake_client, "writing", "ielts-6", 1)

	assert result.fallback_used is True
	assert "unusable" in result.reason
	assert len(result.test.questions) == 1
	assert result.test.questions[0].prompt == FALLBACK_WRITING_PROMPT


def test_writing_falls_back_on_upstream_error(fake_client):
	fake_client.chat_replies.append(UpstreamError("OpenAI chat error: 503 overloaded"))
	result = _generate(fake_client, "writing", "ielts-5", 3)

	assert result.fallback_used is True
	assert "503" in result.reason
	assert result.test.level == "ielts-5"
	assert [q.prompt for q in result.test.questions] == [FALLBACK_WRITING_PROMPT]


def test_writing_falls_back_when_questions_missing(fake_client):
	fake_client.chat_replies.append(json.dumps({"test_id": "x", "questions": []}))
	result = _generate(fake_client, "writing", "ielts-6", 1)
	assert result.fallback_used is True


def test_speaking_is_fixed_and_offline(fake_client):
	result = _generate(fake_client, "speaking", "ielts-6", 1)

	assert fake_client.chat_calls == []
	assert isinstance(result.test, SpeakingTest)
	data = dump_test(result.test)
	assert [p["part"] for p in data["parts"]] == [1, 2, 3]
	assert data["parts"][1] == {
		"part": 2,
		"cue": "Describe a memorable trip you had.",
		"prep_time": 60,
		"speak_time": 120,
	}
	assert data["parts"][0]["items"][0] == {"id": "p1q1", "q": "What is your full name?"}


def test_other_types_get_empty_stub(fake_client):
	result = _generate(fake_client, "listening", "ielts-6", 1)
	assert isinstance(result.test, GenericTest)
	assert dump_test(result.test) == {
		"test_id": result.test.test_id,
		"type": "listening",
		"level": "ielts-6",
		"questions": [],
	}


def test_each_generation_gets_fresh_id(fake_client):
	first = _generate(fake_client, "speaking", "ielts-6", 1)
	second = _generate(fake_client, "speaking", "ielts-6", 1)
	assert first.test.test_id != second.test.test_id
