"""
Тесты для SessionStore

Проверяет:
1. Монотонные идентификаторы, начиная с 1
2. InvalidBounds при создании
3. InvalidSession для несуществующих и удалённых сессий
4. replace/clear
"""

import pytest

from mintsale.core.errors import ErrorCode, InvalidBoundsError, InvalidSessionError
from mintsale.ledgers import SessionStore


class TestSessionCreation:
    """Тесты создания сессий"""

    def test_ids_start_at_one(self, make_config) -> None:
        store = SessionStore()
        assert store.create(make_config()) == 1
        assert store.create(make_config()) == 2
        assert store.session_ids() == [1, 2]

    def test_initial_snapshot(self, make_config) -> None:
        store = SessionStore()
        session = store.get(store.create(make_config(max_supply=77)))
        assert session.max_supply == 77
        assert session.total_deposited == 0
        assert session.allocation_start == 1_000

    def test_invalid_bounds(self, make_config) -> None:
        """Нарушенный порядок окон — InvalidBounds с границами в context"""
        store = SessionStore()
        with pytest.raises(InvalidBoundsError) as exc_info:
            store.create(make_config(minting_start=1_500))
        assert exc_info.value.code == ErrorCode.INVALID_BOUNDS
        assert exc_info.value.context["minting_start"] == 1_500
        assert store.session_ids() == []

    def test_zero_supply(self, make_config) -> None:
        with pytest.raises(InvalidBoundsError, match="max_supply"):
            SessionStore().create(make_config(max_supply=0))

    def test_failed_create_does_not_consume_id(self, make_config) -> None:
        store = SessionStore()
        with pytest.raises(InvalidBoundsError):
            store.create(make_config(min_price=0))
        assert store.create(make_config()) == 1


class TestSessionLookup:
    """Тесты чтения и записи"""

    def test_unknown_session(self) -> None:
        store = SessionStore()
        with pytest.raises(InvalidSessionError) as exc_info:
            store.get(5)
        assert exc_info.value.context == {"session_id": 5}
        assert not store.exists(5)

    def test_replace(self, make_config) -> None:
        store = SessionStore()
        session = store.get(store.create(make_config()))
        store.replace(session.model_copy(update={"total_deposited": 50}))
        assert store.get(session.id).total_deposited == 50

    def test_replace_unknown_rejected(self, make_config) -> None:
        store = SessionStore()
        session = store.get(store.create(make_config()))
        with pytest.raises(InvalidSessionError):
            store.replace(session.model_copy(update={"id": 9}))

    def test_clear(self, make_config) -> None:
        store = SessionStore()
        session_id = store.create(make_config())
        cleared = store.clear(session_id)
        assert cleared.id == session_id
        assert not store.exists(session_id)
        with pytest.raises(InvalidSessionError):
            store.get(session_id)
        with pytest.raises(InvalidSessionError):
            store.clear(session_id)

    def test_ids_not_reused_after_clear(self, make_config) -> None:
        store = SessionStore()
        store.clear(store.create(make_config()))
        assert store.create(make_config()) == 2
