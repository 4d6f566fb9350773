"""SessionStore — хранилище сессий и их жизненного цикла.

Единственный владелец записей Session и счётчика идентификаторов.
Записи immutable: изменение сессии = replace() новым экземпляром.
"""

import logging
from threading import Lock

from mintsale.core.domain.session import Session, SessionConfig
from mintsale.core.errors import InvalidBoundsError, InvalidSessionError

logger = logging.getLogger(__name__)


class SessionStore:
    """Хранилище сессий с монотонными идентификаторами (начиная с 1)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[int, Session] = {}
        self._next_session_id = 1

    def create(self, config: SessionConfig) -> int:
        """Создание сессии.

        Raises:
            InvalidBoundsError: нарушен порядок окон, max_supply == 0 или min_price == 0
        """
        violation = config.bounds_violation()
        if violation is not None:
            raise InvalidBoundsError(
                violation,
                allocation_start=config.allocation_start,
                allocation_end=config.allocation_end,
                minting_start=config.minting_start,
                minting_end=config.minting_end,
                max_supply=config.max_supply,
            )

        with self._lock:
            session_id = self._next_session_id
            self._next_session_id += 1
            self._sessions[session_id] = Session.from_config(session_id, config)

        logger.debug("session %d created", session_id)
        return session_id

    def get(self, session_id: int) -> Session:
        """Снапшот сессии.

        Raises:
            InvalidSessionError: сессия не создана или удалена
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise InvalidSessionError(session_id)
        return session

    def exists(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._sessions

    def replace(self, session: Session) -> None:
        """Запись нового снапшота существующей сессии."""
        with self._lock:
            if session.id not in self._sessions:
                raise InvalidSessionError(session.id)
            self._sessions[session.id] = session

    def clear(self, session_id: int) -> Session:
        """Удаление сессии; дальнейшие get() падают с InvalidSession."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise InvalidSessionError(session_id)
        return session

    def session_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._sessions)
