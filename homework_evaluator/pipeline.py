from dataclasses import dataclass, field
from enum import Enum
from threading import Event
from typing import Iterable, List, Optional

from .errors import DeserializationError, RemoteCallError, ensure_not_cancelled
from .llm.base import EvaluationClient
from .report import EvaluationReport, extract_evaluation
from .schemas import RemoteDocument, RubricCriterionResult


class DocumentStatus(str, Enum):
    EVALUATED = "evaluated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentOutcome:
    document: RemoteDocument
    status: DocumentStatus
    results: List[RubricCriterionResult] = field(default_factory=list)
    message: str = ""


def evaluate_document(client: EvaluationClient, document: RemoteDocument, rubric_json: str,
                      cancel: Optional[Event] = None) -> DocumentOutcome:
    """Grade one document. Recoverable failures come back as a FAILED outcome instead of raising."""
    if not document.text or not document.text.strip():
        return DocumentOutcome(document, DocumentStatus.SKIPPED, message="No text to evaluate.")

    try:
        completion = client.evaluate(document.text, rubric_json, cancel=cancel)
    except RemoteCallError as e:
        return DocumentOutcome(document, DocumentStatus.FAILED, message=str(e))

    content = completion.first_content()
    if not content or not content.strip():
        return DocumentOutcome(document, DocumentStatus.SKIPPED,
                               message=f"No AI evaluation returned for '{document.name}'")

    try:
        results = extract_evaluation(content)
    except DeserializationError as e:
        return DocumentOutcome(document, DocumentStatus.FAILED, message=str(e))

    if results is None:
        return DocumentOutcome(document, DocumentStatus.SKIPPED,
                               message=f"Answer for '{document.name}' has no 'evaluacion' list")
    return DocumentOutcome(document, DocumentStatus.EVALUATED, results=results)


def run_evaluation(documents: Iterable[RemoteDocument], client: EvaluationClient, rubric_json: str,
                   folder_name: str, cancel: Optional[Event] = None) -> EvaluationReport:
    """Evaluate documents one after another and fold the successful ones into a report."""
    report = EvaluationReport(folder_name)
    for doc in documents:
        ensure_not_cancelled(cancel)
        print(f"- {doc.name} (ID: {doc.id})")
        outcome = evaluate_document(client, doc, rubric_json, cancel=cancel)
        if outcome.status == DocumentStatus.EVALUATED:
            report.add(doc.name, outcome.results)
            print(f"✓ Evaluated '{doc.name}' ({len(outcome.results)} criteria)")
        elif outcome.status == DocumentStatus.FAILED:
            print(f"✗ Error evaluating '{doc.name}': {outcome.message}")
        else:
            print(outcome.message)
    return report
