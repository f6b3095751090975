"""Unit tests for the evaluation client."""

import json
import threading
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from homework_evaluator.errors import (
    DeserializationError,
    MockFixtureNotFoundError,
    OperationCancelled,
    RemoteCallError,
)
from homework_evaluator.llm.base import EvaluationClient, build_messages
from homework_evaluator.settings import LlmSettings


COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 0,
    "model": "gpt-4o-mini",
    "choices": [
        {
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": '{"evaluacion": []}'},
        }
    ],
}


def api_status_error(status_code, body):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, text=body, request=request)
    return openai.APIStatusError("request failed", response=response, body=None)


class TestBuildMessages:

    def test_three_messages(self):
        messages = build_messages("Hello world", '{"criteria":["clarity"]}')

        assert [m["role"] for m in messages] == ["system", "user", "user"]
        assert "Hello world" in messages[1]["content"]
        assert '{"criteria":["clarity"]}' in messages[2]["content"]
        for key in ("criterio", "nivel", "comentario"):
            assert key in messages[2]["content"]

    def test_braces_in_document_text_are_kept(self):
        messages = build_messages("f(x) = {x}", "{}")
        assert "f(x) = {x}" in messages[1]["content"]


class TestMockMode:

    @pytest.fixture
    def data_dir(self, tmp_path):
        return tmp_path

    def test_reads_fixture_without_api_key(self, data_dir):
        (data_dir / "mock_gpt_response.json").write_text(json.dumps(COMPLETION), encoding="utf-8")
        client = EvaluationClient(LlmSettings(), data_dir=data_dir, mock=True)

        completion = client.evaluate("text", "{}")

        assert completion.first_content() == '{"evaluacion": []}'
        assert client.client is None

    def test_missing_fixture(self, data_dir):
        client = EvaluationClient(LlmSettings(), data_dir=data_dir, mock=True)

        with pytest.raises(MockFixtureNotFoundError):
            client.evaluate("text", "{}")

    def test_missing_fixture_is_file_not_found(self, data_dir):
        client = EvaluationClient(LlmSettings(), data_dir=data_dir, mock=True)

        with pytest.raises(FileNotFoundError):
            client.evaluate("text", "{}")

    def test_malformed_fixture(self, data_dir):
        (data_dir / "mock_gpt_response.json").write_text("{broken", encoding="utf-8")
        client = EvaluationClient(LlmSettings(), data_dir=data_dir, mock=True)

        with pytest.raises(DeserializationError):
            client.evaluate("text", "{}")


class TestRemoteMode:

    @pytest.fixture
    def mock_openai(self):
        with patch("homework_evaluator.llm.base.openai.OpenAI") as mock_cls:
            yield mock_cls

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key"):
            EvaluationClient(LlmSettings(api_key=None))

    def test_single_attempt_client(self, mock_openai):
        EvaluationClient(LlmSettings(api_key="sk-test"))

        mock_openai.assert_called_once_with(api_key="sk-test", max_retries=0)

    def test_request_payload(self, mock_openai):
        create = mock_openai.return_value.chat.completions.create
        create.return_value = MagicMock(model_dump=MagicMock(return_value=COMPLETION))
        client = EvaluationClient(LlmSettings(api_key="sk-test"))

        completion = client.evaluate("Hello world", '{"criteria":["clarity"]}')

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.2
        assert "stream" not in kwargs
        assert len(kwargs["messages"]) == 3
        assert completion.first_content() == '{"evaluacion": []}'

    def test_error_status_raises_remote_call_error(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = api_status_error(401, "invalid key")
        client = EvaluationClient(LlmSettings(api_key="sk-test"))

        with pytest.raises(RemoteCallError) as exc_info:
            client.evaluate("Hello", "{}")

        assert exc_info.value.status_code == 401
        assert "invalid key" in exc_info.value.body
        assert mock_openai.return_value.chat.completions.create.call_count == 1

    def test_non_status_openai_error_raises_remote_call_error(self, mock_openai):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_openai.return_value.chat.completions.create.side_effect = openai.APIResponseValidationError(
            response=httpx.Response(200, request=request), body=None)
        client = EvaluationClient(LlmSettings(api_key="sk-test"))

        with pytest.raises(RemoteCallError) as exc_info:
            client.evaluate("Hello", "{}")

        assert isinstance(exc_info.value.__cause__, openai.APIResponseValidationError)

    def test_cancelled_before_request(self, mock_openai):
        cancel = threading.Event()
        cancel.set()
        client = EvaluationClient(LlmSettings(api_key="sk-test"))

        with pytest.raises(OperationCancelled):
            client.evaluate("Hello", "{}", cancel=cancel)

        mock_openai.return_value.chat.completions.create.assert_not_called()
