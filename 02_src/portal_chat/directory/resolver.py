"""Resolution of virtual conversations to persisted ones."""

from dataclasses import replace
from typing import Iterable

from ..logging_config import get_logger
from ..models import Conversation, participant_from_virtual_id
from .membership import find_private_conversation

logger = get_logger(__name__)


def resolve(
    conversation: Conversation, known: Iterable[Conversation]
) -> Conversation:
    """Swap a virtual conversation for its persisted counterpart when one exists.

    Returns the input object unchanged when it is already persisted or no
    match exists, and a new object otherwise, so callers can detect
    resolution with an identity check. Inputs are never mutated.
    """
    if not conversation.is_virtual:
        return conversation

    participant_id = conversation.participant_ref or participant_from_virtual_id(
        conversation.id
    )
    if participant_id is None:
        return conversation

    match = find_private_conversation(participant_id, known)
    if match is None:
        return conversation

    logger.info(
        "Resolved conversation %s -> %s",
        conversation.id,
        match.id,
        extra={"context": {"participant_id": participant_id}},
    )
    return replace(
        match,
        display_name=conversation.display_name or match.display_name,
        participant_ref=str(participant_id),
        employee=conversation.employee or match.employee,
    )
