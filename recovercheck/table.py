"""Memoizing table of recovery results.

Every key moves through ``unresolved -> resolving -> resolved(bool)`` at most
once.  A key that is met again while it is still ``resolving`` belongs to a
reference cycle and reads as ``False`` without being stored, so cyclic
references terminate and the first computation still owns the final value.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Set, Union

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """What a table entry records about a callable.

    ``GUARD``: the callable registers a deferred call that recovers, so a
    panic raised while it runs cannot escape it.
    ``HANDLER``: the callable recovers when it is itself the deferred call.
    """

    GUARD = "guard"
    HANDLER = "handler"


class RecoveryKey(NamedTuple):
    role: Role
    name: str
    local: bool = False


class _Resolving:
    def __repr__(self) -> str:
        return "<resolving>"


RESOLVING = _Resolving()

_State = Union[bool, _Resolving]


class RecoveryTable:
    """Recovery results for one analysis run.

    Qualified (cross-module) entries are shared by every table forked from
    the same root with :meth:`fork_local`; local entries belong to a single
    package.  All mutation goes through :meth:`lookup_or_compute`, which holds
    a re-entrant lock for the duration of a computation.  Nested lookups from
    the computing thread proceed, while other threads asking for any key
    wait and then read the cached result, so no key is ever computed twice.
    """

    def __init__(
        self,
        _shared: Optional[Dict[RecoveryKey, _State]] = None,
        _lock: Optional[threading.RLock] = None,
    ) -> None:
        self._qualified: Dict[RecoveryKey, _State] = _shared if _shared is not None else {}
        self._local: Dict[RecoveryKey, _State] = {}
        self._local_names: Set[str] = set()
        self._lock = _lock if _lock is not None else threading.RLock()
        self.computations = 0

    def fork_local(self) -> "RecoveryTable":
        """Return a table with fresh local entries and shared qualified ones."""
        return RecoveryTable(_shared=self._qualified, _lock=self._lock)

    def _entries_for(self, key: RecoveryKey) -> Dict[RecoveryKey, _State]:
        return self._local if key.local else self._qualified

    # ------------------------------------------------------------------
    # Local names
    # ------------------------------------------------------------------

    def declare_local(self, name: str) -> None:
        self._local_names.add(name)

    def is_local(self, name: str) -> bool:
        return name in self._local_names

    def lookup_local(self, name: str, role: Role = Role.GUARD) -> Optional[bool]:
        """Return the memoized result for a local function.

        ``None`` means *name* was never a local function definition (or
        has not been analyzed for *role*); callers must not guess.
        """
        if name not in self._local_names:
            return None
        with self._lock:
            state = self._local.get(RecoveryKey(role, name, local=True))
        if isinstance(state, bool):
            return state
        return None

    # ------------------------------------------------------------------
    # The single mutation point
    # ------------------------------------------------------------------

    def lookup_or_compute(self, key: RecoveryKey, compute: Callable[[], bool]) -> bool:
        with self._lock:
            entries = self._entries_for(key)
            state = entries.get(key)
            if isinstance(state, bool):
                logger.debug("Recovery cache hit for %s: %s", key, state)
                return state
            if state is RESOLVING:
                logger.debug("Reference cycle through %s; treating as unsafe", key)
                return False

            entries[key] = RESOLVING
            self.computations += 1
            try:
                result = bool(compute())
            except BaseException:
                del entries[key]
                raise
            entries[key] = result
            return result

    def get(self, key: RecoveryKey) -> Optional[bool]:
        with self._lock:
            state = self._entries_for(key).get(key)
        return state if isinstance(state, bool) else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._qualified) + len(self._local)

    def __contains__(self, key: RecoveryKey) -> bool:
        return self.get(key) is not None
