"""Age-based retention sweep."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from baxfer.core.cancel import CancellationToken
from baxfer.core.exceptions import CancelledError, ValidationError
from baxfer.core.models import PruneSummary
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage


def prune(
        storage: BaseStorage,
        prefix: str,
        max_age: timedelta,
        *,
        token: CancellationToken | None = None,
        now: datetime | None = None,
        log: Any | None = None,
) -> PruneSummary:
    """Delete every object under *prefix* last modified before ``now - max_age``.

    The sweep is best effort: a key whose ``stat`` or ``delete`` fails is
    logged and left behind. Only a failing ``list`` (or cancellation) aborts
    the operation.

    Raises:
        ValidationError: If *max_age* is not positive.
    """
    log = log or get_logger(__name__)
    token = token or CancellationToken()

    if max_age <= timedelta(0):
        raise ValidationError("No age specified for pruning")

    cutoff = (now or datetime.now(timezone.utc)) - max_age
    log.info("prune_started", prefix=prefix, cutoff=cutoff.isoformat())

    keys = storage.list(prefix)
    summary = PruneSummary()

    for key in keys:
        token.raise_if_cancelled()
        summary.examined += 1

        try:
            meta = storage.stat(key)
        except CancelledError:
            raise
        except Exception as exc:
            log.error("prune_stat_failed", key=key, error=str(exc))
            summary.failed.append(key)
            continue

        if meta.last_modified >= cutoff:
            log.debug("prune_kept", key=key, last_modified=meta.last_modified.isoformat())
            continue

        try:
            storage.delete(key)
        except CancelledError:
            raise
        except Exception as exc:
            log.error("prune_delete_failed", key=key, error=str(exc))
            summary.failed.append(key)
            continue

        log.info("file_pruned", key=key, last_modified=meta.last_modified.isoformat())
        summary.deleted.append(key)

    log.info(
        "prune_finished",
        examined=summary.examined,
        deleted=len(summary.deleted),
        failed=len(summary.failed),
    )
    return summary
