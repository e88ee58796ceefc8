"""
Mock LLM response templates for cost-free development.

Fabricated but realistic Dutch responses that simulate the generation and
topic-suggestion calls without contacting the provider.
"""

import json
import random
from typing import Dict, List

from toetsgen.taxonomy import DEFAULT_SCHEME, get_scheme

BIOLOGY_TOPICS = [
    "Cellen",
    "Fotosynthese",
    "Voeding en vertering",
    "Erfelijkheid",
    "Ecosystemen",
    "Evolutie",
]


def get_exam_response(scheme_id: str = DEFAULT_SCHEME, topics: List[str] = None) -> str:
    """
    Generate a mock exam in the provider's JSON shape.

    One question is produced per category of the scheme, alternating
    between multiple-choice and open questions.

    Returns:
        JSON string with the full exam record
    """
    scheme = get_scheme(scheme_id) or get_scheme(DEFAULT_SCHEME)
    if not topics:
        topics = random.sample(BIOLOGY_TOPICS, k=2)

    questions = []
    answers = []
    for index, label in enumerate(scheme.labels):
        question_id = index + 1
        topic = topics[index % len(topics)]
        if index % 2 == 0:
            questions.append(
                {
                    "id": question_id,
                    "text": f"Welke uitspraak over {topic.lower()} is juist?",
                    "taxonomyLabel": label,
                    "type": "Multiple Choice",
                    "options": [
                        f"A. Een juiste uitspraak over {topic.lower()}",
                        "B. Een onjuiste uitspraak",
                        "C. Een gedeeltelijk juiste uitspraak",
                        "D. Geen van bovenstaande",
                    ],
                    "points": 1,
                }
            )
            answers.append(
                {
                    "questionId": question_id,
                    "answer": "A",
                    "explanation": f"{scheme.level_names[label]}: de leerling herkent de juiste uitspraak.",
                }
            )
        else:
            questions.append(
                {
                    "id": question_id,
                    "text": f"Leg in eigen woorden uit wat {topic.lower()} betekent voor een organisme.",
                    "taxonomyLabel": label,
                    "type": "Open",
                    "points": 2,
                }
            )
            answers.append(
                {
                    "questionId": question_id,
                    "answer": f"Een uitleg van {topic.lower()} met een passend voorbeeld.",
                    "criteria": "1 punt voor de uitleg, 1 punt voor het voorbeeld.",
                    "explanation": f"{scheme.level_names[label]}: de leerling past kennis toe.",
                }
            )

    matrix = []
    for topic_index, topic in enumerate(topics):
        row: Dict[str, object] = {"topic": topic}
        for label_index, label in enumerate(scheme.labels):
            row[label.lower()] = 1 if label_index % len(topics) == topic_index else 0
        matrix.append(row)

    response = {
        "title": f"Proeftoets {' en '.join(topics)}",
        "taxonomy": scheme.scheme_id,
        "introduction": "Lees iedere vraag goed. Je mag een rekenmachine gebruiken.",
        "questions": questions,
        "matrix": matrix,
        "answers": answers,
        "goalMapping": [
            {"goal": f"De leerling kan {topics[0].lower()} uitleggen.", "questionIds": [1, 2]},
        ],
        "analysisInstructions": (
            f"Tel per leerling de behaalde punten per {scheme.name}-niveau op en deel door het "
            "maximum. Een score onder 55% op een niveau vraagt om extra oefening op dat niveau."
        ),
    }
    return json.dumps(response, indent=2, ensure_ascii=False)


def get_topic_suggestion_response(subject: str = "", level: str = ""):
    """
    Generate a mock search-grounded topic suggestion.

    Returns:
        (text, sources) tuple where sources is a list of {title, uri} dicts
    """
    picked = random.sample(BIOLOGY_TOPICS, k=5)
    lines = [f"Belangrijke onderwerpen voor {subject or 'dit vak'} ({level or 'onbekend niveau'}):"]
    lines.extend(f"- {topic}" for topic in picked)
    lines.append("")
    lines.append("Leerdoelen:")
    lines.append(f"- De leerling kan {picked[0].lower()} beschrijven.")
    lines.append(f"- De leerling kan {picked[1].lower()} toepassen in een nieuwe context.")
    sources = [
        {"title": "SLO Kerndoelen", "uri": "https://www.slo.nl/"},
        {"title": "Examenblad", "uri": "https://www.examenblad.nl/"},
    ]
    return "\n".join(lines), sources
