import json
import re
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .errors import DeserializationError
from .schemas import EvaluationRoot, RubricCriterionResult

FENCED_JSON_RE = re.compile(r"```json\s*(.*?)```", re.DOTALL)


def extract_json_block(text: str) -> str:
    """Return the interior of the first ```json fenced block, or the whole text if there is none."""
    match = FENCED_JSON_RE.search(text)
    return match.group(1) if match else text


def parse_evaluation(candidate: str) -> Optional[List[RubricCriterionResult]]:
    """Deserialize ``{"evaluacion": [...]}``; None when the evaluation list is missing or null."""
    try:
        root = EvaluationRoot.model_validate_json(candidate)
    except ValidationError as e:
        raise DeserializationError(f"Model answer is not a valid evaluation: {e}") from e
    return root.evaluacion


def extract_evaluation(raw_answer: str) -> Optional[List[RubricCriterionResult]]:
    return parse_evaluation(extract_json_block(raw_answer))


class EvaluationReport:
    """Per-document rubric results for one folder, in insertion order."""

    def __init__(self, folder_name: str):
        self.folder_name = folder_name
        self.documents: Dict[str, List[RubricCriterionResult]] = {}

    def add(self, document_name: str, results: List[RubricCriterionResult]) -> None:
        if document_name in self.documents:
            print(f"Warning: duplicate document name '{document_name}', keeping the last evaluation")
        self.documents[document_name] = list(results)

    def to_dict(self) -> Dict[str, Dict[str, List[dict]]]:
        return {
            self.folder_name: {
                name: [r.model_dump(by_alias=True) for r in results]
                for name, results in self.documents.items()
            }
        }

    def output_path(self, directory: Optional[Path] = None) -> Path:
        base = Path.cwd() if directory is None else Path(directory)
        return base / f"{self.folder_name}.json"

    def write(self, directory: Optional[Path] = None) -> Path:
        """Write ``<folder_name>.json``, replacing any existing file."""
        out_path = self.output_path(directory)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return out_path


def load_report(path: Path) -> EvaluationReport:
    """Read a report written by ``EvaluationReport.write``."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or len(data) != 1:
        raise DeserializationError(f"{path} does not hold a single-folder report")
    folder_name, documents = next(iter(data.items()))
    report = EvaluationReport(folder_name)
    try:
        for name, items in documents.items():
            report.add(name, [RubricCriterionResult.model_validate(item) for item in items])
    except (AttributeError, TypeError, ValidationError) as e:
        raise DeserializationError(f"{path} is not a valid report: {e}") from e
    return report
