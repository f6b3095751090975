from pathlib import Path
from threading import Event
from typing import Dict, List, Optional

import openai
from pydantic import ValidationError

from homework_evaluator.errors import (
    DeserializationError,
    MockFixtureNotFoundError,
    RemoteCallError,
    ensure_not_cancelled,
)
from homework_evaluator.schemas import RawCompletion
from homework_evaluator.settings import LlmSettings
from .constants import LLMModels, TaskLLMConfigs

PROMPTS_DIR = Path(__file__).parents[1] / "prompts"
MOCK_RESPONSE_FILE = "mock_gpt_response.json"


def _load_prompt(name: str) -> str:
    return (PROMPTS_DIR / f"{name}.txt").read_text(encoding="utf-8")


def build_messages(document_text: str, rubric_json: str) -> List[Dict[str, str]]:
    """System instruction, the student's text, then the rubric with the answer format."""
    return [
        {"role": "system", "content": _load_prompt("evaluator_system").strip()},
        {"role": "user", "content": _load_prompt("student_text").format(text=document_text).strip()},
        {"role": "user", "content": _load_prompt("rubric_instructions").format(rubric=rubric_json).strip()},
    ]


class EvaluationClient:
    """
    Grades a document against a rubric with a single chat completion call.

    In mock mode no request is made: the response is read from
    ``<data_dir>/mock_gpt_response.json`` instead.
    """

    def __init__(self, settings: LlmSettings, model_name: str = LLMModels.GPT_4O_MINI.value,
                 data_dir: Optional[Path] = None, mock: bool = False,
                 mock_response_file: str = MOCK_RESPONSE_FILE):
        """
        Args:
            settings: Resolved OpenAI settings (only the API key is used)
            model_name: Chat model to call
            data_dir: Directory holding the mock response fixture
            mock: Read the fixture instead of calling the endpoint
            mock_response_file: File name of the fixture inside data_dir
        """
        self.model_name = model_name
        self.data_dir = Path("data") if data_dir is None else Path(data_dir)
        self.mock = mock
        self.mock_response_file = mock_response_file
        self.client = None

        if not mock:
            if not settings.api_key:
                raise ValueError("No OpenAI API key found. Set OpenAI__ApiKey in the environment or user-secrets.")
            # One attempt per document; the SDK retries by default
            self.client = openai.OpenAI(api_key=settings.api_key, max_retries=0)

    def evaluate(self, document_text: str, rubric_json: str, cancel: Optional[Event] = None) -> RawCompletion:
        """
        Evaluate a document's text with the given rubric

        Args:
            document_text: Plain text of the student's document
            rubric_json: Rubric file contents, passed through verbatim
            cancel: Optional cancellation signal, checked before the call

        Returns:
            The raw completion; callers read the first choice only
        """
        ensure_not_cancelled(cancel)
        if self.mock:
            return self._load_mock_response()

        config = TaskLLMConfigs.RUBRIC_EVALUATION
        request = {
            "model": self.model_name,
            "messages": build_messages(document_text, rubric_json),
            "temperature": config.temperature,
        }

        try:
            response = self.client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            raise RemoteCallError(e.status_code, e.response.text) from e
        except openai.APIConnectionError as e:
            raise RemoteCallError(None, str(e)) from e
        except openai.OpenAIError as e:
            raise RemoteCallError(getattr(e, "status_code", None), str(e)) from e

        return RawCompletion.model_validate(response.model_dump())

    def _load_mock_response(self) -> RawCompletion:
        mock_path = self.data_dir / self.mock_response_file
        if not mock_path.exists():
            raise MockFixtureNotFoundError(f"Mock response file not found: '{mock_path}'")
        try:
            return RawCompletion.model_validate_json(mock_path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise DeserializationError(f"Could not deserialize mock response '{mock_path}': {e}") from e
