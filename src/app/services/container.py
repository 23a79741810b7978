from functools import lru_cache

from app.clients.blob_store import BlobStore, InMemoryBlobStore, JsonFileBlobStore
from app.clients.directory_client import DirectoryClient, InMemoryDirectory
from app.config import settings
from app.services.clock import now_ms
from app.services.comment_log import CommentLog
from app.services.demo_data import demo_proposals
from app.services.identity_service import IdentityProvider
from app.services.progress import ProgressProjection
from app.services.proposal_store import ProposalStore
from app.services.proposal_type_registry import ProposalTypeRegistry
from app.services.workflow_engine import WorkflowEngine


@lru_cache(maxsize=1)
def get_blob_store() -> BlobStore:
    if settings.store_backend == "file":
        return JsonFileBlobStore(settings.store_directory)
    return InMemoryBlobStore()


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    if settings.identity_service_base_url:
        return IdentityProvider(
            DirectoryClient(
                base_url=settings.identity_service_base_url,
                timeout_seconds=settings.upstream_timeout_seconds,
                max_retries=settings.upstream_max_retries,
                retry_backoff_seconds=settings.upstream_retry_backoff_seconds,
            )
        )
    return IdentityProvider(InMemoryDirectory())


@lru_cache(maxsize=1)
def get_proposal_store() -> ProposalStore:
    store = ProposalStore(get_blob_store(), blob_key=settings.proposals_blob_key)
    store.load()
    if settings.seed_demo_data and store.is_empty():
        store.save_all(demo_proposals(now_ms()))
    return store


@lru_cache(maxsize=1)
def get_type_registry() -> ProposalTypeRegistry:
    registry = ProposalTypeRegistry(get_blob_store(), blob_key=settings.proposal_types_blob_key)
    if settings.seed_demo_data:
        registry.seed_defaults()
    return registry


@lru_cache(maxsize=1)
def get_comment_log() -> CommentLog:
    return CommentLog()


@lru_cache(maxsize=1)
def get_workflow_engine() -> WorkflowEngine:
    return WorkflowEngine(
        store=get_proposal_store(),
        identity=get_identity_provider(),
        comment_log=get_comment_log(),
    )


@lru_cache(maxsize=1)
def get_progress_projection() -> ProgressProjection:
    return ProgressProjection(get_proposal_store())


def reset_container() -> None:
    for factory in (
        get_blob_store,
        get_identity_provider,
        get_proposal_store,
        get_type_registry,
        get_comment_log,
        get_workflow_engine,
        get_progress_projection,
    ):
        factory.cache_clear()
