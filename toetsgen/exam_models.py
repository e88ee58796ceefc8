"""Pydantic models for the structured exam returned by the generator."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from toetsgen.taxonomy import get_scheme

QUESTION_KINDS = ("Multiple Choice", "Open", "Other")


class _ProviderModel(BaseModel):
    """Accepts both the provider's camelCase keys and our snake_case names."""

    model_config = ConfigDict(populate_by_name=True)


class Question(_ProviderModel):
    id: int
    text: str
    taxonomy_label: str = Field(alias="taxonomyLabel")
    type: Literal["Multiple Choice", "Open", "Other"]
    options: Optional[List[str]] = None
    points: int


class AnswerKeyItem(_ProviderModel):
    question_id: int = Field(alias="questionId")
    answer: str
    criteria: Optional[str] = None
    explanation: str


class MatrixRow(_ProviderModel):
    """Question counts for one topic, keyed by the scheme's category labels."""

    topic: str
    counts: Dict[str, int]


class GoalMapping(_ProviderModel):
    goal: str
    question_ids: List[int] = Field(alias="questionIds")


class GeneratedExam(_ProviderModel):
    title: str
    taxonomy: str
    introduction: str = ""
    questions: List[Question]
    matrix: List[MatrixRow]
    answers: List[AnswerKeyItem]
    goal_mapping: List[GoalMapping] = Field(alias="goalMapping")
    analysis_instructions: str = Field(alias="analysisInstructions")

    @model_validator(mode="before")
    @classmethod
    def _fold_matrix_columns(cls, data):
        """Fold the provider's per-label matrix fields into ``counts``.

        The provider returns rows like ``{"topic": "Cellen", "r": 2, "t1": 1}``;
        the label set comes from the echoed taxonomy scheme.
        """
        if not isinstance(data, dict):
            return data
        scheme = get_scheme(data.get("taxonomy"))
        rows = data.get("matrix")
        if scheme is None or not isinstance(rows, list):
            return data

        folded = []
        for row in rows:
            if not isinstance(row, dict) or "counts" in row:
                folded.append(row)
                continue
            counts = {}
            for label in scheme.labels:
                if label.lower() in row:
                    counts[label] = row[label.lower()]
                elif label in row:
                    counts[label] = row[label]
                else:
                    raise ValueError(f"matrix row '{row.get('topic')}' is missing column {label}")
            folded.append({"topic": row.get("topic"), "counts": counts})
        return {**data, "matrix": folded}

    @property
    def scheme(self):
        return get_scheme(self.taxonomy)

    @property
    def labels(self):
        """Category labels for matrix columns, in scheme order."""
        scheme = self.scheme
        if scheme is not None:
            return list(scheme.labels)
        seen = []
        for row in self.matrix:
            for label in row.counts:
                if label not in seen:
                    seen.append(label)
        return seen

    def question_by_id(self, question_id):
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def question_number(self, question_id):
        """1-based position of a question in the exam, or None if unknown."""
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index + 1
        return None

    def row_total(self, row):
        return sum(row.counts.get(label, 0) for label in self.labels)

    def total_points(self):
        return sum(question.points for question in self.questions)
