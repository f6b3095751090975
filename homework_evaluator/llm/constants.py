from enum import Enum
from dataclasses import dataclass


class LLMModels(Enum):
    GPT_4O_MINI = "gpt-4o-mini"


@dataclass
class TaskLLMConfig:
    """LLM configuration for a specific task"""
    temperature: float


class TaskLLMConfigs:
    """LLM configurations for different tasks"""

    # Grading one document against the rubric
    RUBRIC_EVALUATION = TaskLLMConfig(
        temperature=0.2,
    )
