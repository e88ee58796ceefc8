"""
Exam generation for the Toetsgenerator.

Turns an ExamConfiguration into a Dutch generation prompt and a response
schema for the active taxonomy scheme, sends both to the configured LLM
provider in JSON mode, and parses the answer into a GeneratedExam.
Uses MockLLMProvider when ``llm.provider`` is "mock".

Run tests with: python -m pytest tests/test_exam_generator.py -v
"""

import json
import logging
import re

from pydantic import ValidationError

from toetsgen.exam_config import ExamConfiguration
from toetsgen.exam_models import QUESTION_KINDS, GeneratedExam
from toetsgen.llm_provider import ProviderError, describe_response, get_provider
from toetsgen.taxonomy import SCHEME_KTI, get_scheme

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "Kon de toets niet genereren. Controleer de invoer en probeer het opnieuw."

_SYSTEM_PROMPTS = {
    SCHEME_KTI: """
Je bent een expert en onderwijskundige gespecialiseerd in KTI-toetsing (Kennis, Toepassen, Inzicht).
Genereer een volledige KTI-toets, een KTI-matrix, een antwoordmodel en een overzicht van de leerdoelen.

Wat AI moet genereren:
A. KTI-toetsmatrijs: Verdeling van vragen per onderwerp en per niveau (K/T/I).
B. Volledige KTI-toets: Genummerde vragen met K/T/I-label.
C. Antwoordmodel: Korte uitleg waarom de vraag K/T/I is.
D. Overzicht leerdoelen: Koppeling leerdoel -> vraagnummer(s).
E. Toetsanalyse-sjabloon: Tabel om resultaten per K/T/I in te vullen.
""",
    "RTTI": """
Je bent een expert en onderwijskundige gespecialiseerd in RTTI-toetsing.
Genereer een volledige RTTI-toets.

Wat AI moet genereren:
A. RTTI-toetsmatrijs: Verdeling van vragen per onderwerp en per denkniveau (R/T1/T2/I).
B. Volledige RTTI-toets: Per vraag het RTTI-label.
C. Antwoordmodel: Per vraag uitleg waarom het R/T1/T2/I is.
D. Overzicht leerdoelen: Koppeling leerdoel -> vraagnummer(s).
E. Toetsanalyse-sjabloon.
""",
}


class GenerationError(Exception):
    """Exam generation failed; ``user_message`` is safe to show in the UI."""

    def __init__(self, message, user_message=GENERATION_FAILED_MESSAGE):
        super().__init__(message)
        self.user_message = user_message


def clean_json_string(text):
    """Strip Markdown code fences some models wrap around JSON output."""
    return re.sub(r"```(?:json)?", "", text or "").strip()


def build_response_schema(scheme):
    """Build the JSON response schema for one taxonomy scheme.

    The taxonomy label enum and the matrix columns come from the scheme;
    matrix columns use lowercase label names.
    """
    columns = [label.lower() for label in scheme.labels]
    matrix_properties = {"topic": {"type": "STRING"}}
    for column in columns:
        matrix_properties[column] = {"type": "INTEGER"}

    return {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "taxonomy": {"type": "STRING", "enum": [scheme.scheme_id]},
            "introduction": {"type": "STRING"},
            "questions": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "id": {"type": "INTEGER"},
                        "text": {"type": "STRING"},
                        "taxonomyLabel": {"type": "STRING", "enum": list(scheme.labels)},
                        "type": {"type": "STRING", "enum": list(QUESTION_KINDS)},
                        "options": {"type": "ARRAY", "items": {"type": "STRING"}},
                        "points": {"type": "INTEGER"},
                    },
                    "required": ["id", "text", "taxonomyLabel", "type", "points"],
                },
            },
            "matrix": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": matrix_properties,
                    "required": ["topic"] + columns,
                },
            },
            "answers": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "questionId": {"type": "INTEGER"},
                        "answer": {"type": "STRING"},
                        "criteria": {"type": "STRING"},
                        "explanation": {"type": "STRING"},
                    },
                    "required": ["questionId", "answer", "explanation"],
                },
            },
            "goalMapping": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "goal": {"type": "STRING"},
                        "questionIds": {"type": "ARRAY", "items": {"type": "INTEGER"}},
                    },
                    "required": ["goal", "questionIds"],
                },
            },
            "analysisInstructions": {"type": "STRING"},
        },
        "required": ["title", "taxonomy", "questions", "matrix", "answers", "goalMapping", "analysisInstructions"],
    }


def build_prompt(exam_config: ExamConfiguration) -> str:
    """Build the Dutch generation prompt for a configuration."""
    scheme = get_scheme(exam_config.taxonomy)
    distribution_lines = "\n".join(
        f"- {label} ({scheme.level_names[label]}): {exam_config.distribution.get(label, 0)}%"
        for label in scheme.labels
    )
    return f"""
{_SYSTEM_PROMPTS.get(scheme.scheme_id, _SYSTEM_PROMPTS["RTTI"]).strip()}

Configuratie:
Vak: {exam_config.subject}
Niveau: {exam_config.level}
Onderwerpen: {exam_config.topics}
Leerdoelen: {exam_config.learning_goals}

{scheme.name} Verdeling:
{distribution_lines}

Randvoorwaarden:
- Totale Duur: {exam_config.duration} minuten
- Aantal Vragen: {exam_config.question_count}
- Vraagtypes: {exam_config.question_types}
- Taalniveau: {exam_config.language_level}
- Extra Eisen: {exam_config.extra_requirements}

Genereer alle inhoud (vragen, antwoorden, toelichtingen) in het NEDERLANDS.
Reageer strikt in JSON-formaat dat overeenkomt met het opgegeven schema.
""".strip()


def parse_exam_response(text: str) -> GeneratedExam:
    """Parse raw provider output into a GeneratedExam.

    Raises:
        GenerationError: if the text is not JSON or does not match the shape.
    """
    try:
        data = json.loads(clean_json_string(text) or "{}")
    except json.JSONDecodeError as e:
        logger.warning("parse_exam_response: invalid JSON %s", describe_response(text))
        raise GenerationError(f"Response is not valid JSON: {e}") from e
    try:
        return GeneratedExam.model_validate(data)
    except ValidationError as e:
        logger.warning("parse_exam_response: response does not match the exam shape: %s", e)
        raise GenerationError(f"Response does not match the exam shape: {e}") from e


def generate_exam(config: dict, exam_config: ExamConfiguration) -> GeneratedExam:
    """
    Generate a complete exam for a configuration.

    Single attempt; nothing is retried here.

    Args:
        config: Application config dict (must include llm.provider)
        exam_config: The submitted configuration snapshot

    Returns:
        The parsed GeneratedExam

    Raises:
        ProviderError: when the provider credential is missing (raised
            before any request is sent).
        GenerationError: when the provider rejects the request or the
            response cannot be parsed.
    """
    scheme = get_scheme(exam_config.taxonomy)
    if scheme is None:
        raise GenerationError(f"Unknown taxonomy scheme: {exam_config.taxonomy}")

    provider = get_provider(config)

    logger.info(
        "generate_exam: %s exam, %s questions, subject=%r",
        scheme.scheme_id,
        exam_config.question_count,
        exam_config.subject,
    )
    try:
        raw = provider.generate(
            [build_prompt(exam_config)],
            json_mode=True,
            response_schema=build_response_schema(scheme),
        )
    except ProviderError as e:
        raise GenerationError(f"Provider rejected the request: {e}") from e

    exam = parse_exam_response(raw)
    logger.info("generate_exam: received %d questions", len(exam.questions))
    return exam
