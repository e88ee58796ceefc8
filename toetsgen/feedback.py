"""
Feedback messages from teachers.

Messages are stored first and then forwarded to a form-relay service
(``feedback.relay_url`` in config.yaml, e.g. a Formspree form endpoint).
The destination address lives only in the relay service, never in a page.
"""

import logging

import requests

from toetsgen.database import FeedbackMessage

logger = logging.getLogger(__name__)

RELAY_TIMEOUT_SECONDS = 10


def relay_feedback(relay_url, name, message):
    """POST one message to the relay.

    Returns:
        True if the relay accepted it, False otherwise.
    """
    payload = {
        "email": "Anonieme Gebruiker",
        "message": f"Feedback van: {name or 'Onbekend'}\n\n{message}",
    }
    try:
        response = requests.post(
            relay_url,
            json=payload,
            headers={"Accept": "application/json"},
            timeout=RELAY_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning("Feedback relay unreachable: %s", e)
        return False
    if not response.ok:
        logger.warning("Feedback relay rejected message: HTTP %s", response.status_code)
        return False
    return True


def submit_feedback(session, config, name, message):
    """Store a feedback message and forward it if a relay is configured.

    Returns:
        The stored FeedbackMessage (``delivered`` tells whether the relay
        accepted it).
    """
    feedback = FeedbackMessage(name=name or None, message=message, delivered=False)
    session.add(feedback)
    session.commit()

    relay_url = config.get("feedback", {}).get("relay_url")
    if relay_url:
        feedback.delivered = relay_feedback(relay_url, name, message)
        session.commit()
    else:
        logger.info("No feedback relay configured; message %s stored only", feedback.id)
    return feedback
