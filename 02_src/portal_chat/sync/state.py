"""Per-session message state."""

from dataclasses import dataclass, field

from ..models import Conversation, Message


def dedupe_messages(messages: list[Message]) -> list[Message]:
    """Drop messages whose id already appeared earlier; order and first copies kept."""
    seen: set[str] = set()
    unique = []
    for message in messages:
        key = str(message.id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(message)
    return unique


def have_messages_changed(prev: list[Message], next_: list[Message]) -> bool:
    """Cheap change check: length, then only the tail's (id, timestamp)."""
    if len(prev) != len(next_):
        return True
    if not prev:
        return False
    p, n = prev[-1], next_[-1]
    return str(p.id) != str(n.id) or str(p.timestamp) != str(n.timestamp)


@dataclass
class SessionState:
    """State owned by the currently open conversation.

    `synced` is the last server list; `pending` is the optimistic overlay
    shown after it. An overlay entry stays while its send is in flight or
    after it failed; a foreground sync drops the confirmed ones.
    `unread_generation` bumps each time new unread messages are flagged.
    """

    conversation: Conversation
    synced: list[Message] = field(default_factory=list)
    pending: list[Message] = field(default_factory=list)
    has_unread: bool = False
    unread_generation: int = 0
    is_loading: bool = False
    closed: bool = False

    @property
    def visible(self) -> list[Message]:
        return dedupe_messages([*self.synced, *self.pending])

    def flag_unread(self) -> None:
        self.has_unread = True
        self.unread_generation += 1

    def drop_confirmed(self) -> bool:
        """Remove overlay entries whose send succeeded. Returns True if any were removed."""
        kept = [m for m in self.pending if m.pending or m.failed]
        if len(kept) == len(self.pending):
            return False
        self.pending = kept
        return True
