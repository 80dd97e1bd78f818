"""Incremental upload decision: upload again or skip."""

from __future__ import annotations

from typing import Any

from baxfer.core.models import EligibilityDecision, LocalFile
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage


def check_eligibility(
        storage: BaseStorage,
        key: str,
        local: LocalFile,
        *,
        compressing: bool,
        log: Any | None = None,
) -> EligibilityDecision:
    """Decide whether *local* must be uploaded to *key*.

    The rules lean towards uploading: a missing remote copy or a newer local
    file is always uploaded, and a size mismatch is uploaded unless the
    remote object is a compressed archive (its size says nothing about the
    local file). Failures from ``exists``/``stat`` are raised, never treated
    as a skip.
    """
    log = log or get_logger(__name__)

    try:
        exists = storage.exists(key)
    except Exception as exc:
        log.error("eligibility_exists_failed", key=key, error=str(exc))
        raise
    if not exists:
        return EligibilityDecision(eligible=True, reason="not present remotely")

    try:
        remote = storage.stat(key)
    except Exception as exc:
        log.error("eligibility_stat_failed", key=key, error=str(exc))
        raise

    if local.modified > remote.last_modified:
        log.debug("local_file_newer", key=key)
        return EligibilityDecision(eligible=True, reason="local file is newer")

    if not compressing and local.size != remote.size:
        log.debug("file_sizes_differ", key=key, local_size=local.size, remote_size=remote.size)
        return EligibilityDecision(
            eligible=True,
            reason=f"size differs (local {local.size}, remote {remote.size})",
        )

    return EligibilityDecision(eligible=False, reason="already uploaded and not modified")
