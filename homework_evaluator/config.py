
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from homework_evaluator.llm.constants import LLMModels

@dataclass
class Config:
    model_name: str = LLMModels.GPT_4O_MINI.value
    data_dir: Path = field(default_factory=lambda: Path("data"))
    mock: bool = False
    output_dir: Optional[Path] = None  # None writes into the working directory
    mock_response_file: str = "mock_gpt_response.json"
    public_settings_file: str = "appsettings.json"
    project_file: str = "pyproject.toml"
