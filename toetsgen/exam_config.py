"""
Assembly of the immutable exam configuration sent to the generator.

The distribution and question-type models stay mutable until the moment the
teacher submits; ``assemble_configuration`` re-checks the whole form right before
it takes the snapshot.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from toetsgen.question_types import FALLBACK_DESCRIPTION, QuestionTypeAllocation
from toetsgen.taxonomy import TaxonomyDistribution

LANGUAGE_LEVELS = ["Laag (Korte zinnen, makkelijke woorden)", "Normaal", "Hoog (Academisch)"]
DEFAULT_LANGUAGE_LEVEL = "Normaal"

DEFAULT_DURATION = 60
DEFAULT_QUESTION_COUNT = 15

SUBJECT_MISSING_MESSAGE = "Vul het vak in."
TOPICS_MISSING_MESSAGE = "Vul de onderwerpen in."


class ConfigurationError(ValueError):
    """Raised when an exam configuration cannot be submitted.

    ``errors`` holds one Dutch message per problem, suitable for showing
    next to the offending field.
    """

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ExamConfiguration(BaseModel):
    """Snapshot of the exam form, taken once per submission."""

    model_config = ConfigDict(frozen=True)

    taxonomy: str
    subject: str
    level: str
    topics: str
    learning_goals: str
    distribution: Dict[str, int]
    duration: int
    question_count: int
    question_types: str
    language_level: str
    extra_requirements: str


def validation_errors(
    distribution: TaxonomyDistribution,
    allocation: QuestionTypeAllocation,
    subject: Optional[str] = None,
    topics: Optional[str] = None,
) -> List[str]:
    """Return the inline validation messages for the current form state.

    An empty list means the configuration may be submitted. ``subject`` and
    ``topics`` are only checked when given; blank or whitespace-only text
    counts as missing.
    """
    errors = []
    if subject is not None and not subject.strip():
        errors.append(SUBJECT_MISSING_MESSAGE)
    if topics is not None and not topics.strip():
        errors.append(TOPICS_MISSING_MESSAGE)
    if not distribution.is_valid():
        errors.append(
            f"De {distribution.scheme.name}-verdeling moet in totaal 100% zijn "
            f"(nu {distribution.total_percent()}%)."
        )
    if allocation.is_empty():
        errors.append("Kies minimaal één vraagtype.")
    elif not allocation.is_valid():
        errors.append(
            f"De verdeling van vraagtypes moet in totaal 100% zijn (nu {allocation.total_percent()}%)."
        )
    return errors


def describe_question_types(allocation: QuestionTypeAllocation) -> str:
    """Display string for the allocation, never empty."""
    return allocation.describe() or FALLBACK_DESCRIPTION


def assemble_configuration(
    distribution: TaxonomyDistribution,
    allocation: QuestionTypeAllocation,
    subject: str = "",
    level: str = "",
    topics: str = "",
    learning_goals: str = "",
    duration: int = DEFAULT_DURATION,
    question_count: int = DEFAULT_QUESTION_COUNT,
    language_level: str = DEFAULT_LANGUAGE_LEVEL,
    extra_requirements: str = "",
) -> ExamConfiguration:
    """Take the immutable configuration snapshot for one submission.

    Free-text fields are passed through verbatim.

    Raises:
        ConfigurationError: if either distribution is invalid, no question
            types are selected, or the subject or topics are blank.
    """
    errors = validation_errors(distribution, allocation, subject, topics)
    if errors:
        raise ConfigurationError(errors)

    if language_level not in LANGUAGE_LEVELS:
        language_level = DEFAULT_LANGUAGE_LEVEL

    return ExamConfiguration(
        taxonomy=distribution.scheme_id,
        subject=subject,
        level=level,
        topics=topics,
        learning_goals=learning_goals,
        distribution=distribution.as_dict(),
        duration=duration,
        question_count=question_count,
        question_types=describe_question_types(allocation),
        language_level=language_level,
        extra_requirements=extra_requirements,
    )
