import logging
from collections.abc import Iterable

from app.clients.blob_store import BlobStore
from app.contracts.identity import UserRole
from app.contracts.proposals import Proposal, ProposalStatus

logger = logging.getLogger(__name__)


class ProposalStore:
    """Canonical in-memory proposal collection persisted as a single blob.

    Reads hand out deep copies so callers can never mutate the canonical
    record without going through :meth:`put`. Every write persists the full
    collection.
    """

    def __init__(self, blob_store: BlobStore, blob_key: str = "proposals"):
        self._blob_store = blob_store
        self._blob_key = blob_key
        self._proposals: dict[str, Proposal] = {}
        self._loaded = False

    def load(self) -> list[Proposal]:
        raw = self._blob_store.read(self._blob_key) or []
        self._proposals = {}
        for record in raw:
            proposal = Proposal.model_validate(record)
            self._proposals[proposal.id] = proposal
        self._loaded = True
        logger.info("Loaded %d proposals from blob '%s'", len(self._proposals), self._blob_key)
        return self.list_all()

    def save_all(self, proposals: Iterable[Proposal]) -> None:
        self._commit({p.id: p.model_copy(deep=True) for p in proposals})

    def get_by_id(self, proposal_id: str) -> Proposal | None:
        self._ensure_loaded()
        proposal = self._proposals.get(proposal_id)
        return proposal.model_copy(deep=True) if proposal is not None else None

    def put(self, proposal: Proposal) -> None:
        self._ensure_loaded()
        self._commit({**self._proposals, proposal.id: proposal.model_copy(deep=True)})

    def delete(self, proposal_id: str) -> bool:
        self._ensure_loaded()
        if proposal_id not in self._proposals:
            return False
        self._commit({pid: p for pid, p in self._proposals.items() if pid != proposal_id})
        return True

    def is_empty(self) -> bool:
        self._ensure_loaded()
        return not self._proposals

    def list_all(self) -> list[Proposal]:
        self._ensure_loaded()
        return [p.model_copy(deep=True) for p in self._proposals.values()]

    def filter_by_creator(self, actor_id: str) -> list[Proposal]:
        return [p for p in self.list_all() if p.created_by == actor_id]

    def filter_assigned_or_pending_for(self, actor_id: str, actor_role: UserRole) -> list[Proposal]:
        return [
            p
            for p in self.list_all()
            if p.status != ProposalStatus.APPROVED
            and _needs_attention_from(p, actor_id, actor_role)
        ]

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _commit(self, proposals: dict[str, Proposal]) -> None:
        # The blob is written first; a failed write leaves the canonical copy untouched.
        self._blob_store.write(
            self._blob_key,
            [p.model_dump(mode="json", by_alias=True) for p in proposals.values()],
        )
        self._proposals = proposals
        self._loaded = True


def _needs_attention_from(proposal: Proposal, actor_id: str, actor_role: UserRole) -> bool:
    if proposal.assigned_to == actor_id:
        return True
    if proposal.status == ProposalStatus.PENDING_ADMIN and actor_role == UserRole.ADMIN:
        return True
    if proposal.status == ProposalStatus.PENDING_APPROVERS and actor_id in proposal.pending_approvers:
        return True
    return proposal.status == ProposalStatus.PENDING_REGISTRAR and actor_role == UserRole.REGISTRAR
