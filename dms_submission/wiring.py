"""
Process Wiring

Constructs the store, archival gateway, notifier and SubmissionService once,
from config.

Production: TypeDB store, S3 gateway, SDES over HTTP
Local mode (DMS_SUBMISSION_LOCAL_MODE=1): in-memory collaborators
"""

import logging
from typing import Optional

from dms_submission.config import Config, config
from dms_submission.submission.file_service import FileService
from dms_submission.submission.item_store import (
    InMemorySubmissionItemStore,
    SubmissionItemStore,
    TypeDBSubmissionItemStore,
)
from dms_submission.submission.object_store import (
    InMemoryObjectStoreGateway,
    ObjectStoreGateway,
    S3ObjectStoreGateway,
)
from dms_submission.submission.sdes import DeliveryNotifier, RecordingNotifier, SdesNotifier
from dms_submission.submission.service import SubmissionService

logger = logging.getLogger(__name__)


def build_store(cfg: Config = config) -> SubmissionItemStore:
    if cfg.submission.local_mode:
        return InMemorySubmissionItemStore()

    from dms_submission.db.typedb_client import TypeDBConnection

    connection = TypeDBConnection(cfg.typedb.address, cfg.typedb.database)
    connection.ensure_database()
    connection.load_schema()
    return TypeDBSubmissionItemStore(connection.driver, cfg.typedb.database)


def build_object_store(cfg: Config = config) -> ObjectStoreGateway:
    if cfg.submission.local_mode:
        return InMemoryObjectStoreGateway(cfg.object_store.bucket)
    return S3ObjectStoreGateway(
        cfg.object_store.bucket,
        prefix=cfg.object_store.prefix,
        endpoint_url=cfg.object_store.endpoint_url,
        region=cfg.object_store.region,
    )


def build_notifier(cfg: Config = config) -> DeliveryNotifier:
    if cfg.submission.local_mode:
        return RecordingNotifier()
    return SdesNotifier(
        cfg.sdes.base_url,
        information_type=cfg.sdes.information_type,
        recipient_or_sender=cfg.sdes.recipient_or_sender,
        client_id=cfg.sdes.client_id,
        timeout=cfg.sdes.timeout_seconds,
    )


def build_submission_service(
    cfg: Config = config,
    store: Optional[SubmissionItemStore] = None,
) -> SubmissionService:
    """
    Get SubmissionService with every collaborator built from cfg.

    Args:
        cfg: Configuration to build from
        store: Optional store to inject (CLI tests)
    """
    mode = "local" if cfg.submission.local_mode else "production"
    logger.info(f"Wiring submission service ({mode} mode)")
    return SubmissionService(
        store=store or build_store(cfg),
        object_store=build_object_store(cfg),
        notifier=build_notifier(cfg),
        file_service=FileService(cfg.submission.work_dir_root),
    )
