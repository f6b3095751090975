from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class RemoteDocument(BaseModel):
    id: str
    name: str
    text: str = ""


class RubricCriterionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    criterion: str = Field(alias="criterio")
    level: int = Field(default=0, alias="nivel")  # expected 1-4, not enforced
    comment: str = Field(default="", alias="comentario")


class EvaluationRoot(BaseModel):
    evaluacion: Optional[List[RubricCriterionResult]] = None


class ChatMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None


class ChatChoice(BaseModel):
    index: int = 0
    message: Optional[ChatMessage] = None


class RawCompletion(BaseModel):
    choices: List[ChatChoice] = []

    def first_content(self) -> Optional[str]:
        """Text of the first choice, or None when the model returned nothing."""
        if not self.choices or self.choices[0].message is None:
            return None
        return self.choices[0].message.content
