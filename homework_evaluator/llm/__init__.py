from .base import EvaluationClient, build_messages
from .constants import LLMModels, TaskLLMConfigs

__all__ = ['EvaluationClient', 'build_messages', 'LLMModels', 'TaskLLMConfigs']
