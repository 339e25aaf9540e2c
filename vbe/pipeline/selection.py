import threading
from typing import Dict, Iterable, Iterator, List

class SelectionSet:
    """Job ids the user has marked for batch action.

    Insertion ordered. Membership is kept consistent with the registry by the
    registry itself: its removal operations prune the ids they drop.
    """

    def __init__(self, ids: Iterable[str] = ()):
        self._lock = threading.RLock()
        # dict keeps insertion order
        self._ids: Dict[str, None] = dict.fromkeys(ids)

    def add(self, job_id: str):
        with self._lock:
            self._ids[job_id] = None

    def remove(self, job_id: str):
        with self._lock:
            self._ids.pop(job_id, None)

    def clear(self):
        with self._lock:
            self._ids.clear()

    def select_all(self, ids: Iterable[str]):
        with self._lock:
            for job_id in ids:
                self._ids[job_id] = None

    def contains(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._ids

    def to_list(self) -> List[str]:
        with self._lock:
            return list(self._ids)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_list())
