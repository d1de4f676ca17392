"""
JSON Schema Contract Validators

Модуль для валидации JSON документов settler согласно формальным
JSON Schema контрактам (jsonschema, Draft 2020-12).

Схемы (package data, contracts/schema/):
- settlement_proposal.json — сериализованный SettlementProposal
- settlement_config.json — конфигурация profit cascade для asset
- settler_config.json — конфигурация settler (cooldown, acceptance, dust)
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы лежат в schema/ рядом с этим модулем.
    """

    def __init__(self, schema_dir: Path = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'settlement_proposal')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Mapping[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class SettlementProposalValidator(ContractValidator):
    def __init__(self):
        super().__init__("settlement_proposal")


class SettlementConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("settlement_config")


class SettlerConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("settler_config")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_settlement_proposal(data: Mapping[str, Any]) -> None:
    """
    Валидация сериализованного proposal (SettlementProposal.to_contract()).

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    SettlementProposalValidator().validate(data)


def validate_settlement_config(data: Mapping[str, Any]) -> None:
    """
    Валидация документа SettlementConfig.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    SettlementConfigValidator().validate(data)


def validate_settler_config(data: Mapping[str, Any]) -> None:
    """
    Валидация документа SettlerConfig.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    SettlerConfigValidator().validate(data)
