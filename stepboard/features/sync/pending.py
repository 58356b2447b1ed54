"""
In-flight sync tracking.

At most one sync per participant runs at a time within this process.
Replicas don't share the set, so two instances can still sync the same
participant concurrently.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator


class PendingSyncSet:
    """
    Participant ids with a queued or running sync.

    claim() and release() never await, so check-and-add is atomic on the
    event loop without a lock.
    """

    def __init__(self):
        self._ids: set[str] = set()

    def claim(self, ids: Iterable[str]) -> list[str]:
        """
        Mark ids as pending.

        Returns:
            The ids that were not already pending, in input order
        """
        claimed = []
        for participant_id in ids:
            if participant_id in self._ids:
                continue
            self._ids.add(participant_id)
            claimed.append(participant_id)
        return claimed

    def release(self, ids: Iterable[str]) -> None:
        for participant_id in ids:
            self._ids.discard(participant_id)

    @contextmanager
    def reserve(self, ids: Iterable[str]) -> Iterator[list[str]]:
        """Claim ids for the duration of the block, releasing on any exit."""
        claimed = self.claim(ids)
        try:
            yield claimed
        finally:
            self.release(claimed)

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
