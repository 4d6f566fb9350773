"""
UserDeposit — Модель депозита пользователя в сессии

Immutable Pydantic модель. Создаётся при первом депозите; amount растёт
при deposit и уменьшается при withdraw/mint/forgo; loss_penalty —
средневзвешенный штраф, пересчитывается на каждом депозите и фиксируется
после закрытия окна аллокации.
"""

from pydantic import BaseModel, Field, field_validator

from mintsale.core.math.fixed_point import ONE


class UserDeposit(BaseModel):
    """Депозит пользователя (user × session)."""

    user: str = Field(..., min_length=1, description="Идентификатор пользователя")
    session_id: int = Field(..., ge=1, description="Идентификатор сессии")
    amount: int = Field(0, ge=0, description="Текущий живой баланс")
    loss_penalty: int = Field(0, ge=0, description="Штраф, fixed-point [0, ONE]")

    model_config = {"frozen": True}

    @field_validator("loss_penalty")
    @classmethod
    def validate_penalty_range(cls, v: int) -> int:
        """Штраф не может превышать 100%."""
        if v > ONE:
            raise ValueError(f"loss_penalty {v} exceeds ONE ({ONE})")
        return v

    @property
    def key(self) -> tuple[str, int]:
        return (self.user, self.session_id)
