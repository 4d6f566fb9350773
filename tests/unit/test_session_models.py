"""
Тесты для доменных моделей Session / SessionConfig / UserDeposit

Проверяет:
1. Immutability (frozen Pydantic модели)
2. Валидацию полей
3. bounds_violation — порядок временных границ
4. Производные свойства сессии (окна, escrow, clearing price)
"""

import pytest
from pydantic import ValidationError

from mintsale.core.domain import RolloverOption, Session, SessionConfig, UserDeposit
from mintsale.core.math.fixed_point import ONE

# =============================================================================
# ТЕСТЫ SESSION CONFIG
# =============================================================================


class TestSessionConfig:
    """Тесты для SessionConfig"""

    def test_valid_config(self, make_config) -> None:
        config = make_config()
        assert config.rollover_option == RolloverOption.CLOSE
        assert config.bounds_violation() is None

    def test_immutability(self, make_config) -> None:
        """Config неизменяем"""
        config = make_config()
        with pytest.raises(ValidationError):
            config.min_price = 5

    def test_rollover_option_from_string(self, make_config) -> None:
        config = make_config(rollover_option="GUARANTEED_MINT")
        assert config.rollover_option is RolloverOption.GUARANTEED_MINT

    def test_unknown_rollover_option_rejected(self, make_config) -> None:
        with pytest.raises(ValidationError):
            make_config(rollover_option="EXTEND")

    def test_negative_time_rejected(self, make_config) -> None:
        with pytest.raises(ValidationError):
            make_config(allocation_start=-1)

    def test_empty_coordinator_rejected(self, make_config) -> None:
        with pytest.raises(ValidationError):
            make_config(coordinator="")

    def test_zero_length_cooldown_allowed(self, make_config) -> None:
        """allocation_end == minting_start допустимо"""
        assert make_config(minting_start=2_000).bounds_violation() is None

    @pytest.mark.parametrize(
        "overrides, reason",
        [
            ({"allocation_end": 1_000}, "allocation_start must be < allocation_end"),
            ({"allocation_end": 900}, "allocation_start must be < allocation_end"),
            ({"minting_start": 1_999}, "allocation_end must be <= minting_start"),
            ({"minting_end": 2_500}, "minting_start must be < minting_end"),
            ({"max_supply": 0}, "max_supply must be > 0"),
            ({"min_price": 0}, "min_price must be > 0"),
        ],
    )
    def test_bounds_violation(self, make_config, overrides, reason) -> None:
        """Каждое нарушение порядка границ описано"""
        assert make_config(**overrides).bounds_violation() == reason


# =============================================================================
# ТЕСТЫ SESSION
# =============================================================================


class TestSession:
    """Тесты для Session"""

    def test_from_config_initial_state(self, make_config) -> None:
        session = Session.from_config(7, make_config(max_supply=42))
        assert session.id == 7
        assert session.max_supply == 42
        assert session.total_deposited == 0
        assert session.result_price == 0
        assert session.next_item_index == 0
        assert session.epoch == 0
        assert session.closed is False

    def test_identity_properties(self, make_config) -> None:
        session = Session.from_config(3, make_config(min_price=9))
        assert session.coordinator == "coordinator"
        assert session.deposit_asset_ref == "asset:usdc"
        assert session.item_collection_ref == "items:genesis"
        assert session.min_price == 9
        assert session.escrow_account == "mintsale:session:3"

    def test_immutability(self, make_config) -> None:
        session = Session.from_config(1, make_config())
        with pytest.raises(ValidationError):
            session.total_deposited = 100

    def test_zero_id_rejected(self, make_config) -> None:
        with pytest.raises(ValidationError):
            Session.from_config(0, make_config())

    def test_window_periods(self, make_config) -> None:
        session = Session.from_config(1, make_config())
        assert session.allocation_period == 1_000
        assert session.cooldown_period == 500
        assert session.minting_period == 1_000

    def test_windows_inclusive(self, make_config) -> None:
        """Границы окон включительные"""
        session = Session.from_config(1, make_config())
        assert not session.is_allocation_open(999)
        assert session.is_allocation_open(1_000)
        assert session.is_allocation_open(2_000)
        assert not session.is_allocation_open(2_001)

        assert not session.is_minting_open(2_499)
        assert session.is_minting_open(2_500)
        assert session.is_minting_open(3_500)
        assert not session.is_minting_open(3_501)

    def test_minting_over_at_end(self, make_config) -> None:
        session = Session.from_config(1, make_config())
        assert not session.is_minting_over(3_499)
        assert session.is_minting_over(3_500)


class TestSessionPricing:
    """Тесты для quoted_price / with_fixed_price"""

    def test_quoted_price_from_deposits(self, make_config) -> None:
        session = Session.from_config(1, make_config()).model_copy(update={"total_deposited": 20_000})
        assert session.quoted_price() == 2
        assert session.result_price == 0

    def test_quoted_price_min_price(self, make_config) -> None:
        session = Session.from_config(1, make_config(min_price=100))
        assert session.quoted_price() == 100

    def test_cached_price_wins(self, make_config) -> None:
        """Зафиксированная цена не пересчитывается"""
        session = Session.from_config(1, make_config()).model_copy(
            update={"total_deposited": 90_000, "result_price": 2}
        )
        assert session.quoted_price() == 2

    def test_with_fixed_price(self, make_config) -> None:
        session = Session.from_config(1, make_config()).model_copy(update={"total_deposited": 30_000})
        fixed = session.with_fixed_price()
        assert fixed.result_price == 3
        assert session.result_price == 0
        assert fixed.with_fixed_price() is fixed

    def test_sold_out_keeps_cache(self, make_config) -> None:
        """Исчерпанный supply не вызывает деление на ноль"""
        session = Session.from_config(1, make_config()).model_copy(
            update={"max_supply": 0, "result_price": 4}
        )
        assert session.quoted_price() == 4


class TestSessionWindDown:
    """Тесты для is_wound_down"""

    def test_requires_close_option(self, make_config) -> None:
        session = Session.from_config(1, make_config(rollover_option=RolloverOption.RESTART))
        closed = session.model_copy(update={"closed": True})
        assert not closed.is_wound_down(4_000)

    def test_requires_closed_flag(self, make_config) -> None:
        session = Session.from_config(1, make_config())
        assert not session.is_wound_down(4_000)

    def test_closed_after_minting(self, make_config) -> None:
        session = Session.from_config(1, make_config()).model_copy(update={"closed": True})
        assert session.is_wound_down(3_500)
        assert session.is_wound_down(10_000)


# =============================================================================
# ТЕСТЫ USER DEPOSIT
# =============================================================================


class TestUserDeposit:
    """Тесты для UserDeposit"""

    def test_defaults(self) -> None:
        deposit = UserDeposit(user="alice", session_id=1)
        assert deposit.amount == 0
        assert deposit.loss_penalty == 0
        assert deposit.key == ("alice", 1)

    def test_full_penalty_allowed(self) -> None:
        assert UserDeposit(user="alice", session_id=1, amount=5, loss_penalty=ONE).loss_penalty == ONE

    def test_penalty_above_one_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceeds ONE"):
            UserDeposit(user="alice", session_id=1, amount=5, loss_penalty=ONE + 1)

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UserDeposit(user="alice", session_id=1, amount=-1)

    def test_immutability(self) -> None:
        deposit = UserDeposit(user="alice", session_id=1, amount=5)
        with pytest.raises(ValidationError):
            deposit.amount = 10

    def test_model_copy_update(self) -> None:
        deposit = UserDeposit(user="alice", session_id=1, amount=5)
        updated = deposit.model_copy(update={"amount": 8})
        assert updated.amount == 8
        assert deposit.amount == 5
