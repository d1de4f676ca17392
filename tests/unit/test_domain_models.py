"""
Тесты Pydantic domain моделей

Coverage:
- Batch / BatchBalances: netted, флаги, immutability
- SettlementProposal: alias yield, контракт сериализации
- FeeState: валидация bps, watermark только растёт
- SettlementConfig: получатель с долей должен иметь адрес
- ProfitDistributionResult: сумма переводов <= total
"""

import pytest
from pydantic import ValidationError

from settler.core.contracts import validate_settlement_proposal
from settler.core.domain import (
    AdapterPosition,
    Batch,
    BatchBalances,
    FeeState,
    ProfitDistributionResult,
    ProposalStatus,
    SettlementConfig,
    SettlementProposal,
    SettlementReceipt,
    VaultType,
)
from settler.memory import make_address, make_id

ASSET = make_address("token:USDC")
VAULT = make_address("vault:minter")


def _proposal(**overrides) -> SettlementProposal:
    params = dict(
        proposal_id=make_id("proposal", 1),
        asset=ASSET,
        vault=VAULT,
        batch_id=make_id("batch", 1),
        total_assets=1_000,
        netted=-50,
        yield_=3,
        execute_after=1_700_003_600,
    )
    params.update(overrides)
    return SettlementProposal(**params)


class TestBatch:
    """Тесты Batch."""

    def test_balances_netted_is_signed(self) -> None:
        assert BatchBalances(deposited=100, requested=50).netted == 50
        assert BatchBalances(deposited=50, requested=100).netted == -50

    def test_new_batch_is_open(self) -> None:
        batch = Batch(asset=ASSET, vault=VAULT, batch_id="b-1")
        assert batch.is_open
        assert batch.balances.netted == 0

    def test_closed_batch_not_open(self) -> None:
        batch = Batch(asset=ASSET, vault=VAULT, batch_id="b-1", is_closed=True)
        assert not batch.is_open

    def test_frozen(self) -> None:
        batch = Batch(asset=ASSET, vault=VAULT, batch_id="b-1")
        with pytest.raises(ValidationError):
            batch.deposited = 10

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Batch(asset=ASSET, vault=VAULT, batch_id="b-1", deposited=-1)


class TestSettlementProposal:
    """Тесты SettlementProposal."""

    def test_yield_alias(self) -> None:
        proposal = SettlementProposal.model_validate(
            {
                "proposal_id": "p",
                "asset": ASSET,
                "vault": VAULT,
                "batch_id": "b",
                "total_assets": 10,
                "netted": 0,
                "yield": -7,
                "execute_after": 0,
            }
        )
        assert proposal.yield_ == -7
        assert proposal.status == ProposalStatus.PENDING

    def test_net_negative(self) -> None:
        assert _proposal(netted=-1).is_net_negative
        assert not _proposal(netted=0).is_net_negative

    def test_to_contract_validates_against_schema(self) -> None:
        contract = _proposal().to_contract()
        validate_settlement_proposal(contract)
        assert contract["netted"] == "-50"
        assert contract["yield"] == "3"
        assert contract["status"] == "PENDING"

    def test_large_values_serialize_as_strings(self) -> None:
        contract = _proposal(total_assets=2**200).to_contract()
        validate_settlement_proposal(contract)
        assert contract["total_assets"] == str(2**200)


class TestFeeState:
    """Тесты FeeState."""

    def test_invalid_bps_rejected(self) -> None:
        with pytest.raises(ValidationError, match="performance_fee_bps"):
            FeeState(performance_fee_bps=10_001, share_price_watermark=1)

    def test_watermark_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            FeeState(share_price_watermark=0)

    def test_watermark_only_rises(self) -> None:
        state = FeeState(share_price_watermark=1_000_000)
        raised = state.with_performance_charged(100, 1_200_000)
        assert raised.share_price_watermark == 1_200_000
        assert raised.last_charged_performance == 100

        lowered = raised.with_performance_charged(200, 900_000)
        assert lowered.share_price_watermark == 1_200_000
        assert lowered.last_charged_performance == 200

    def test_management_charge_updates_timestamp_only(self) -> None:
        state = FeeState(share_price_watermark=1_000_000).with_management_charged(42)
        assert state.last_charged_management == 42
        assert state.share_price_watermark == 1_000_000


class TestSettlementConfig:
    """Тесты SettlementConfig."""

    def test_disabled_recipients_may_be_zero(self) -> None:
        config = SettlementConfig()
        assert not config.insurance_enabled
        assert not config.treasury_enabled

    def test_enabled_recipient_needs_address(self) -> None:
        with pytest.raises(ValidationError, match="insurance must be set"):
            SettlementConfig(insurance_bps=100)

    def test_bps_range(self) -> None:
        with pytest.raises(ValidationError, match="treasury_bps"):
            SettlementConfig(treasury=make_address("t"), treasury_bps=10_001)

    def test_vault_types(self) -> None:
        assert not VaultType.MINTER.is_yield_bearing
        assert VaultType.DN.is_yield_bearing


class TestProfitDistributionResult:
    def test_residual(self) -> None:
        result = ProfitDistributionResult(
            total_profit_shares=150, insurance_shares=10, treasury_shares=20, vault_adapter_shares=60
        )
        assert result.distributed_shares == 90
        assert result.residual_shares == 60

    def test_over_allocation_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceed"):
            ProfitDistributionResult(total_profit_shares=10, insurance_shares=6, treasury_shares=5)


class TestPositionAndReceipt:
    def test_adapter_position_snapshot(self) -> None:
        snapshot = AdapterPosition(
            adapter=make_address("a"), vault=VAULT, asset=ASSET, target=make_address("p"),
            shares=10, assets=12,
        )
        assert snapshot.assets == 12

    def test_receipt_without_proposal(self) -> None:
        receipt = SettlementReceipt(
            asset=ASSET, vault=VAULT, batch_id="b", proposal_id=None, netted=0, total_assets=0
        )
        assert not receipt.has_proposal
        assert receipt.fee_quote.total_fee == 0
