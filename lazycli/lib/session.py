"""Last-write-wins bookkeeping for live query lists.

Every update issues a sequence number. A finished resolution is applied only
if its number is still the latest issued and the session is open; in-flight
shell commands are never killed, their results are just dropped.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Hashable

from lazycli.lib.models import QueryStep, StepList, StepReference

log = logging.getLogger(__name__)


class Supersession:
    """Monotonic sequence numbers per key."""

    def __init__(self) -> None:
        self._latest: dict[Hashable, int] = defaultdict(int)

    def issue(self, key: Hashable) -> int:
        self._latest[key] += 1
        return self._latest[key]

    def is_current(self, key: Hashable, seq: int) -> bool:
        return self._latest[key] == seq

    def invalidate(self, key: Hashable) -> None:
        """Make every number issued so far stale."""
        self.issue(key)


class QuerySession:
    """Tracks the latest applied result of one step across requeries."""

    def __init__(self, engine, reference: StepReference):
        self.engine = engine
        self.reference = reference
        self.key = reference.model_dump_json()
        self.result: StepList | None = None
        self.closed = False
        self._seq = Supersession()

    async def update(self, query: str | None) -> StepList | None:
        """Resolve the reference and realize it for `query`.

        The sequence number is issued before resolution, so `if` steps that
        lead to a query step are ordered like direct references. Returns None
        for a query list if a newer update was issued, or the session was
        closed, before this one finished. Other lists are always returned.
        """
        seq = self._seq.issue(self.key)
        step = None
        try:
            step = await self.engine.resolve(
                self.engine.registry.get_step(self.reference, self.reference.package_name)
            )
            result = await self.engine.realize(step, query)
        except Exception:
            if self._is_stale(seq) and (step is None or isinstance(step, QueryStep)):
                log.debug("dropping failed stale query %r", query)
                return None
            raise
        if not isinstance(step, QueryStep):
            return result
        if self._is_stale(seq):
            log.debug("dropping stale result for query %r", query)
            return None
        self.result = result
        return result

    def close(self) -> None:
        self.closed = True
        self._seq.invalidate(self.key)

    def _is_stale(self, seq: int) -> bool:
        return self.closed or not self._seq.is_current(self.key, seq)
