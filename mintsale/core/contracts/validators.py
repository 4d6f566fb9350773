"""
JSON Schema контракты mintsale

Сырые параметры сессии проверяются до построения pydantic-модели, снапшоты
сессий проверяются перед выдачей наружу (Draft 2020-12).

Схемы:
- session_config.json   (сырые параметры сессии от источника конфигурации)
- session_snapshot.json (снапшот Session.model_dump(mode="json"))
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import jsonschema
from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """Кэширующий загрузчик контрактов из каталога schema/ пакета (или заданного каталога)."""

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Схема по имени файла без .json; meta-проверка при первой загрузке.

        Raises:
            FileNotFoundError: Файла схемы нет
            ValueError: Схема не проходит meta-валидацию Draft 2020-12
        """
        cached = self._schemas.get(schema_name)
        if cached is not None:
            return cached

        path = self._schema_dir / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")
        schema = json.loads(path.read_text(encoding="utf-8"))

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {path.name}: {e}") from e

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Проверка данных mintsale против одного контракта.

    При нескольких нарушениях выбрасывается наиболее релевантное
    (jsonschema best_match), так что ошибка и её path детерминированы.
    """

    def __init__(self, schema_name: str, loader: SchemaLoader | None = None):
        self.schema_name = schema_name
        self._validator = Draft202012Validator((loader or _SCHEMA_LOADER).load_schema(schema_name))

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют контракту
        """
        error = best_match(self._validator.iter_errors(data))
        if error is not None:
            raise error


class SessionConfigValidator(ContractValidator):
    """Сырые параметры сессии до построения SessionConfig."""

    def __init__(self, loader: SchemaLoader | None = None):
        super().__init__("session_config", loader)


class SessionSnapshotValidator(ContractValidator):
    """Снапшот Session.model_dump(mode="json")."""

    def __init__(self, loader: SchemaLoader | None = None):
        super().__init__("session_snapshot", loader)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_session_config(data: Mapping[str, Any]) -> None:
    """Проверка параметров create_session_from_mapping (ValidationError при нарушении)."""
    SessionConfigValidator().validate(data)


def validate_session_snapshot(data: Mapping[str, Any]) -> None:
    SessionSnapshotValidator().validate(data)
