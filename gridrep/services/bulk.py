"""Import the viewer's recent sessions with a small worker pool."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from sqlmodel import Session

from ..core import IMPORT_CONCURRENCY, RECENT_IMPORT_LIMIT
from ..errors import ErrorKind, FetchFailed, GridRepError, ScopeRequired
from .iracing import IRacingClient
from .importer import import_session
from .oauth_flow import RECENT_RACES_PATH
from .results import extract_recent_session_ids
from .tokens import get_valid_access_token
from .viewer import Viewer, require_viewer

logger = logging.getLogger(__name__)


@dataclass
class BulkImportResult:
    ids: List[str]
    imported: int = 0
    skipped: int = 0
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "sessionsImported": self.imported,
            "sessionsSkipped": self.skipped,
            "sessionsFailed": self.failed,
            "subsessionIds": self.ids,
            "failures": self.failures,
        }


async def import_recent(
    session: Session,
    viewer: Viewer,
    client: IRacingClient,
    *,
    limit: int = RECENT_IMPORT_LIMIT,
    concurrency: int = IMPORT_CONCURRENCY,
) -> BulkImportResult:
    """Import up to ``limit`` recent subsessions for the verified viewer.

    A failed item is recorded in ``failures`` and never stops the batch.
    """

    user = require_viewer(viewer)
    access_token = await get_valid_access_token(session, user.id, client)

    try:
        payload = await client.fetch_data(RECENT_RACES_PATH, access_token)
    except ScopeRequired:
        raise
    except GridRepError as exc:
        raise FetchFailed("Could not fetch recent races") from exc

    ids = extract_recent_session_ids(payload, limit)
    result = BulkImportResult(ids=ids)

    queue: asyncio.Queue[str] = asyncio.Queue()
    for session_id in ids:
        queue.put_nowait(session_id)

    async def worker() -> None:
        while True:
            try:
                session_id = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                outcome = await import_session(
                    session,
                    session_id,
                    client=client,
                    viewer=viewer,
                    access_token=access_token,
                )
            except GridRepError as exc:
                result.failures[session_id] = exc.kind.value
                logger.warning(
                    "Recent import item failed",
                    extra={"session_id": session_id, "kind": exc.kind.value},
                )
            except Exception:
                result.failures[session_id] = ErrorKind.IMPORT_FAILED.value
                logger.exception("Recent import item crashed", extra={"session_id": session_id})
            else:
                if outcome.skipped:
                    result.skipped += 1
                else:
                    result.imported += 1
            finally:
                queue.task_done()

    workers = max(1, min(concurrency, len(ids)))
    await asyncio.gather(*(worker() for _ in range(workers)))

    logger.info(
        "Recent import finished",
        extra={
            "imported": result.imported,
            "skipped": result.skipped,
            "failed": result.failed,
        },
    )
    return result


__all__ = ["BulkImportResult", "import_recent"]
