"""Short-lived in-process leases on manifests being processed."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

from docportal.common.logging import log_context

from .exceptions import ManifestLeaseConflictError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Lease:
    bucket: str
    key: str
    holder: str
    token: str
    expires_at: float


class ProcessingLeases:
    """Leases keyed by ``(bucket, source key)``.

    Acquire and release never await, so they are atomic on the event loop.
    An expired lease is treated as free. Leases are per process; several
    workers do not see each other's leases.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._leases: dict[tuple[str, str], Lease] = {}

    def acquire(self, bucket: str, key: str, *, holder: str) -> Lease:
        now = self._clock()
        current = self._leases.get((bucket, key))
        if current is not None and current.expires_at > now:
            logger.info(
                "processing.lease.conflict",
                extra=log_context(bucket=bucket, key=key, username=holder, held_by=current.holder),
            )
            raise ManifestLeaseConflictError(bucket, key)
        lease = Lease(
            bucket=bucket,
            key=key,
            holder=holder,
            token=uuid4().hex,
            expires_at=now + self._ttl,
        )
        self._leases[(bucket, key)] = lease
        return lease

    def release(self, lease: Lease) -> None:
        current = self._leases.get((lease.bucket, lease.key))
        if current is not None and current.token == lease.token:
            del self._leases[(lease.bucket, lease.key)]

    def is_held(self, bucket: str, key: str) -> bool:
        current = self._leases.get((bucket, key))
        return current is not None and current.expires_at > self._clock()

    @asynccontextmanager
    async def hold(self, bucket: str, key: str, *, holder: str) -> AsyncIterator[Lease]:
        lease = self.acquire(bucket, key, holder=holder)
        try:
            yield lease
        finally:
            self.release(lease)


__all__ = ["Lease", "ProcessingLeases"]
