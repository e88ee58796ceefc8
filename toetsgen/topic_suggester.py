"""
Search-grounded topic suggestions for the exam form.

Best effort only: a failed suggestion is logged and replaced by a
placeholder so the configuration form keeps working.
"""

import logging
from collections import namedtuple

from toetsgen.llm_provider import get_provider

logger = logging.getLogger(__name__)

SUGGESTION_FAILED_TEXT = "Kon geen onderwerpen ophalen. Probeer het opnieuw."

TopicSuggestion = namedtuple("TopicSuggestion", ["topics", "sources"])


def build_suggestion_prompt(subject, level):
    return (
        f"Ik ben een docent die een toets voorbereidt voor het vak {subject} op niveau {level} in Nederland.\n"
        "Zoek naar het huidige curriculum, kerndoelen en interessant recent nieuws of contexten die relevant "
        "zijn voor dit onderwerp.\n"
        "Geef een lijst van 5-7 belangrijke onderwerpen die ik moet behandelen en 3-5 specifieke leerdoelen.\n"
        "Geef ook een korte samenvatting van een realistische context die ik zou kunnen gebruiken.\n"
        "Reageer volledig in het Nederlands."
    )


def suggest_topics(config, subject, level):
    """
    Ask the provider for topics and learning goals for a subject and level.

    Never raises: any failure, including a missing API key, degrades to
    ``TopicSuggestion(SUGGESTION_FAILED_TEXT, [])``.

    Args:
        config: Application config dict
        subject: Subject name, e.g. "Biologie"
        level: School level, e.g. "VMBO 3 KB"

    Returns:
        TopicSuggestion(topics, sources) with sources as {title, uri} dicts
    """
    try:
        provider = get_provider(config)
        text, sources = provider.search(build_suggestion_prompt(subject, level))
    except Exception as e:
        logger.warning("suggest_topics failed for %r / %r: %s", subject, level, e)
        return TopicSuggestion(SUGGESTION_FAILED_TEXT, [])
    return TopicSuggestion(text or "", list(sources or []))


def apply_suggestion(current_topics, suggestion):
    """Return the topics field value after a suggestion arrives.

    The field is only auto-filled when it is empty; teacher-entered text is
    never overwritten, and the failure placeholder is never copied in.
    """
    if current_topics or suggestion.topics == SUGGESTION_FAILED_TEXT:
        return current_topics
    return suggestion.topics or current_topics
