from typing import Literal

from app.contracts.identity import User
from app.contracts.proposals import Comment, Proposal
from app.services.clock import Clock, IdFactory, new_id, now_ms

REJECTED_PREFIX = "Rejected: "
REVISION_PREFIX = "Revision requested: "
REGISTRAR_REVISION_PREFIX = "Revision requested by Registrar: "
WORKFLOW_NOTE_PREFIXES = (REJECTED_PREFIX, REVISION_PREFIX, REGISTRAR_REVISION_PREFIX)

CommentKind = Literal["all", "conversation", "workflow"]


def is_workflow_note(text: str) -> bool:
    return text.startswith(WORKFLOW_NOTE_PREFIXES)


class CommentLog:
    """Append-only note list kept on each proposal.

    Workflow transitions write notes with one of the ``*_PREFIX`` markers so
    readers can tell them apart from conversation.
    """

    def __init__(self, clock: Clock = now_ms, id_factory: IdFactory = new_id):
        self._clock = clock
        self._id_factory = id_factory

    def append(self, proposal: Proposal, author: User, text: str) -> Comment:
        comment = Comment(
            id=self._id_factory("comment"),
            proposal_id=proposal.id,
            user_id=author.id,
            user_name=author.name,
            user_avatar=author.avatar,
            text=text,
            timestamp=self._clock(),
        )
        proposal.comments = [*proposal.comments, comment]
        return comment

    def append_workflow_note(
        self, proposal: Proposal, author: User, prefix: str, reason: str
    ) -> Comment:
        return self.append(proposal, author, f"{prefix}{reason}")

    def entries(self, proposal: Proposal, kind: CommentKind = "all") -> list[Comment]:
        if kind == "conversation":
            return self.conversation(proposal)
        if kind == "workflow":
            return self.workflow_notes(proposal)
        return list(proposal.comments)

    def conversation(self, proposal: Proposal) -> list[Comment]:
        regular = [c for c in proposal.comments if not is_workflow_note(c.text)]
        return sorted(regular, key=lambda c: c.timestamp, reverse=True)

    def workflow_notes(self, proposal: Proposal) -> list[Comment]:
        return [c for c in proposal.comments if is_workflow_note(c.text)]
