"""Membership evidence extraction and participant matching.

Backends describe who is in a private conversation in several shapes. Each
shape has one extractor; extractors run in a fixed priority order and the
first piece of evidence containing the participant decides the match.
"""

from typing import Any, Callable, Iterable

from ..models import Conversation, ConversationKind, Evidence, EvidenceKind

Extractor = Callable[[dict[str, Any]], tuple[str, ...] | None]


def _id_list(value: Any, key: str | None = None) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    ids = []
    for item in value:
        if isinstance(item, dict):
            item = item.get(key) if key else item.get("id")
        if item is not None and item != "":
            ids.append(str(item))
    return tuple(ids)


def _scalar(field_name: str) -> Extractor:
    def extract(record: dict[str, Any]) -> tuple[str, ...] | None:
        value = record.get(field_name)
        if value is None or value == "":
            return None
        return (str(value),)

    return extract


EVIDENCE_EXTRACTORS: tuple[tuple[EvidenceKind, Extractor], ...] = (
    (EvidenceKind.MEMBERS, lambda r: _id_list(r.get("members"))),
    (EvidenceKind.PARTICIPANTS, lambda r: _id_list(r.get("participants"), "participant_id")),
    (EvidenceKind.PARTICIPANT_IDS, lambda r: _id_list(r.get("participant_ids"))),
    (EvidenceKind.RECIPIENT_ID, _scalar("recipient_id")),
    (EvidenceKind.EMPLOYEE_ID, _scalar("employee_id")),
    (EvidenceKind.USER_ID, _scalar("user_id")),
)


def extract_evidence(record: dict[str, Any]) -> tuple[Evidence, ...]:
    """Collect membership evidence from a backend conversation record, in priority order."""
    evidence = []
    for kind, extractor in EVIDENCE_EXTRACTORS:
        ids = extractor(record)
        if ids:
            evidence.append(Evidence(kind=kind, ids=ids))
    return tuple(evidence)


def match_evidence(
    conversation: Conversation, participant_id: str | int
) -> Evidence | None:
    """Return the first evidence showing the participant in a private conversation."""
    if conversation.kind != ConversationKind.PRIVATE:
        return None
    for evidence in conversation.evidence:
        if evidence.contains(participant_id):
            return evidence
    return None


def find_private_conversation(
    participant_id: str | int, conversations: Iterable[Conversation]
) -> Conversation | None:
    """First persisted private conversation that includes the participant."""
    for conversation in conversations:
        if conversation.is_virtual:
            continue
        if match_evidence(conversation, participant_id) is not None:
            return conversation
    return None
