from __future__ import annotations

"""Server-side conversation memory.

Histories live in process memory and are lost on restart. The store hands out
copies; callers mutate their copy and write it back whole with ``save``.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from assistant.core.messages import Message, system_message
from assistant.errors import ConversationNotFound


logger = logging.getLogger("visionchat.store")

IdGenerator = Callable[[], str]

POLICY_CREATE = "create"
POLICY_REJECT = "reject"


class MonotonicIdGenerator:
    """Millisecond timestamps that never repeat within the process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = now if now > self._last else self._last + 1
            return str(self._last)


class ConversationStore(ABC):
    """Keyed message histories, one per conversation id."""

    def __init__(
        self,
        id_generator: Optional[IdGenerator] = None,
        unknown_id_policy: str = POLICY_CREATE,
    ) -> None:
        if unknown_id_policy not in (POLICY_CREATE, POLICY_REJECT):
            raise ValueError(f"Unknown conversation policy: {unknown_id_policy}")
        self._id_generator = id_generator or MonotonicIdGenerator()
        self.unknown_id_policy = unknown_id_policy
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[List[Message]]:
        """Copy of the stored history, or None when the id is unknown."""

    @abstractmethod
    def save(self, conversation_id: str, history: List[Message]) -> None:
        """Replace the stored history for ``conversation_id`` wholesale."""

    def resolve(self, conversation_id: Optional[str]) -> Tuple[Optional[str], List[Message]]:
        if not conversation_id:
            return None, [system_message()]

        history = self.get(conversation_id)
        if history is not None:
            return conversation_id, history

        if self.unknown_id_policy == POLICY_REJECT:
            raise ConversationNotFound(f"Unknown conversation: {conversation_id}")
        logger.info("Starting conversation under caller-supplied id %s", conversation_id)
        return conversation_id, [system_message()]

    def mint_id(self) -> str:
        new_id = self._id_generator()
        while self.get(new_id) is not None:
            new_id = self._id_generator()
        return new_id

    @contextmanager
    def locked(self, conversation_id: str) -> Iterator[None]:
        """Serialize resolve/save for one conversation.

        Entries live only while some turn holds or waits on them.
        """
        with self._locks_guard:
            entry = self._locks.get(conversation_id)
            if entry is None:
                entry = self._locks[conversation_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[conversation_id]

    @property
    def active_locks(self) -> int:
        with self._locks_guard:
            return len(self._locks)


class InMemoryConversationStore(ConversationStore):
    def __init__(
        self,
        id_generator: Optional[IdGenerator] = None,
        unknown_id_policy: str = POLICY_CREATE,
    ) -> None:
        super().__init__(id_generator=id_generator, unknown_id_policy=unknown_id_policy)
        self._histories: Dict[str, List[Message]] = {}

    def get(self, conversation_id: str) -> Optional[List[Message]]:
        history = self._histories.get(conversation_id)
        return list(history) if history is not None else None

    def save(self, conversation_id: str, history: List[Message]) -> None:
        if not history or history[0].role != "system":
            raise ValueError("History must start with the system message")
        self._histories[conversation_id] = list(history)
        logger.debug("Saved %s messages for %s", len(history), conversation_id)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._histories

    def __len__(self) -> int:
        return len(self._histories)
