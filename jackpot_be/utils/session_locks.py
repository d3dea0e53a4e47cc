import threading
from contextlib import contextmanager


class SessionLockRegistry:
    """
    One re-entrant lock per session id.

    Spins and cashouts on the same session run one at a time; different sessions
    never wait on each other. Entries are dropped once no thread holds or waits
    on them, so the registry does not grow with the number of sessions ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._users = {}

    @contextmanager
    def hold(self, session_id):
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.RLock()
            self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[session_id] -= 1
                if self._users[session_id] == 0:
                    del self._users[session_id]
                    del self._locks[session_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)
