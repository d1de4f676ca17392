"""
Tests for JSON Schema contracts and SettlerConfig loading

- Валидность самих схем
- Детекция нарушений required / pattern / range
- load_config из dict и из файла
- load_settlement_config и его использование в build_environment
"""

import json

import pytest
from jsonschema import ValidationError as SchemaValidationError
from pydantic import ValidationError

from settler.config import SettlerConfig, load_config, load_settlement_config
from settler.core.contracts import (
    SchemaLoader,
    SettlementConfigValidator,
    SettlementProposalValidator,
    validate_settlement_config,
    validate_settler_config,
)
from settler.core.domain.settlement_config import SettlementConfig
from settler.memory import build_environment, make_address


class TestSchemaLoader:
    """Тесты загрузчика схем."""

    @pytest.mark.parametrize(
        "name", ["settlement_proposal", "settlement_config", "settler_config"]
    )
    def test_schemas_load_and_are_valid(self, name: str) -> None:
        schema = SchemaLoader().load_schema(name)
        assert schema["type"] == "object"

    def test_missing_schema(self) -> None:
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("does_not_exist")

    def test_cached(self) -> None:
        loader = SchemaLoader()
        assert loader.load_schema("settler_config") is loader.load_schema("settler_config")


class TestSettlementConfigContract:
    def _valid(self) -> dict:
        return {
            "treasury": make_address("treasury"),
            "insurance": make_address("insurance"),
            "treasury_bps": 1000,
            "insurance_bps": 500,
        }

    def test_valid_document(self) -> None:
        validate_settlement_config(self._valid())
        assert SettlementConfigValidator().is_valid(self._valid())

    def test_bps_over_range(self) -> None:
        data = self._valid()
        data["treasury_bps"] = 10_001
        with pytest.raises(SchemaValidationError):
            validate_settlement_config(data)

    def test_missing_required(self) -> None:
        data = self._valid()
        del data["insurance"]
        errors = list(SettlementConfigValidator().iter_errors(data))
        assert len(errors) == 1


class TestSettlementProposalContract:
    def test_bad_address_rejected(self) -> None:
        validator = SettlementProposalValidator()
        data = {
            "proposal_id": "0x" + "a" * 64,
            "asset": "not-an-address",
            "vault": make_address("vault"),
            "batch_id": "0x" + "b" * 64,
            "total_assets": "10",
            "netted": "-1",
            "yield": "0",
            "fees_charged": "0",
            "execute_after": 1,
            "last_fees_charged_management": 0,
            "last_fees_charged_performance": 0,
            "accepted": False,
            "status": "PENDING",
        }
        assert not validator.is_valid(data)
        data["asset"] = make_address("asset")
        assert validator.is_valid(data)
        data["total_assets"] = "-10"
        assert not validator.is_valid(data)


class TestSettlerConfig:
    """Тесты SettlerConfig и load_config."""

    def test_defaults(self) -> None:
        config = SettlerConfig()
        assert config.cooldown_seconds == 3600
        assert config.require_guardian_acceptance is False
        assert config.max_dust_steps == 1000
        assert config.default_profit_share_bps == 0

    def test_load_from_mapping(self) -> None:
        config = load_config({"cooldown_seconds": 60, "require_guardian_acceptance": True})
        assert config.cooldown_seconds == 60
        assert config.require_guardian_acceptance

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "settler.json"
        path.write_text(json.dumps({"max_dust_steps": 5, "default_profit_share_bps": 2500}))
        config = load_config(path)
        assert config.max_dust_steps == 5
        assert config.default_profit_share_bps == 2500

    def test_unknown_key_rejected_by_schema(self) -> None:
        with pytest.raises(SchemaValidationError):
            load_config({"cooldown": 60})

    def test_schema_rejects_negative_cooldown(self) -> None:
        with pytest.raises(SchemaValidationError):
            validate_settler_config({"cooldown_seconds": -1})

    def test_model_rejects_bad_profit_share(self) -> None:
        with pytest.raises(ValidationError):
            SettlerConfig(default_profit_share_bps=10_001)

    def test_frozen(self) -> None:
        config = SettlerConfig()
        with pytest.raises(ValidationError):
            config.cooldown_seconds = 1


class TestLoadSettlementConfig:
    """Тесты load_settlement_config."""

    def _document(self) -> dict:
        return {
            "treasury": make_address("treasury"),
            "insurance": make_address("insurance"),
            "treasury_bps": 1000,
            "insurance_bps": 500,
        }

    def test_load_from_mapping(self) -> None:
        config = load_settlement_config(self._document())
        assert isinstance(config, SettlementConfig)
        assert config.treasury_bps == 1000
        assert config.insurance_enabled

    def test_load_from_file(self, tmp_path) -> None:
        path = tmp_path / "settlement.json"
        path.write_text(json.dumps(self._document()))
        config = load_settlement_config(str(path))
        assert config.insurance == make_address("insurance")
        assert config.treasury_enabled

    def test_schema_rejects_bps_over_range(self) -> None:
        data = self._document()
        data["insurance_bps"] = 10_001
        with pytest.raises(SchemaValidationError):
            load_settlement_config(data)

    def test_schema_rejects_missing_recipient(self) -> None:
        data = self._document()
        del data["treasury"]
        with pytest.raises(SchemaValidationError):
            load_settlement_config(data)

    def test_model_rejects_share_without_address(self) -> None:
        data = self._document()
        data["insurance"] = "0x" + "0" * 40
        with pytest.raises(ValidationError):
            load_settlement_config(data)

    def test_build_environment_accepts_document(self) -> None:
        env = build_environment(settlement_config=self._document())
        config = env.registry.get_settlement_config(env.asset)
        assert config == load_settlement_config(self._document())

    def test_build_environment_rejects_invalid_document(self) -> None:
        data = self._document()
        data["treasury_bps"] = -1
        with pytest.raises(SchemaValidationError):
            build_environment(settlement_config=data)
