"""
Тесты settlement yield-bearing vault через SettlementCoordinator

Coverage:
- Первый stake: netting shares от ledger adapter к vault adapter
- Profit cascade при отрицательном depeg (insurance, доля vault)
- Loss recovery при положительном depeg
- Management fee в shares позиции → treasury
- Полный rollback при ошибке посреди операции
- Performance fee только за прошедшее время, без повторного списания прибыли
- propose_settlement для закрытого и отменённого batch
- Отменённый batch блокирует новые settlements asset до повторного propose
"""

import pytest

from settler.config import SettlerConfig
from settler.core.domain.settlement_config import SettlementConfig
from settler.core.exceptions import (
    BatchAlreadySettled,
    BatchNotClosed,
    CancelledBatchPending,
    InsufficientBalance,
    InvalidBasisPoints,
    ProposalAlreadyPending,
)
from settler.core.math.fixed_point import SECONDS_PER_YEAR
from settler.memory import build_environment, make_address
from tests.conftest import ALICE, BOB, INSTITUTION, INSURANCE


@pytest.fixture
def staked_env(env, settle_minter, settle_vault):
    """Ledger с 1000 assets, alice застейкала 100 (settlement исполнен)."""
    settle_minter(env, deposited=1000)
    env.vault.request_stake(ALICE, 100)
    settle_vault(env)
    return env


class TestFirstStake:
    """Первый settlement staking vault."""

    def test_inflow_moves_shares_to_vault_adapter(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )

        assert receipt.netted == 100
        assert receipt.total_assets == 100
        assert receipt.details["depeg"] == 0
        assert receipt.details["direction"] == "INFLOW"
        assert receipt.distribution is None
        assert env.position.balance_of(env.vault_adapter.address) == 100
        assert env.position.balance_of(env.minter_adapter.address) == 900

        proposal = env.ledger.get_settlement_proposal(receipt.proposal_id)
        assert proposal.yield_ == 0
        # pending proposal vault уменьшает ожидания minter
        assert env.ledger.get_virtual_balance(env.minter.address) == 900
        assert env.ledger.get_virtual_balance(env.vault.address) == 100

    def test_execute_mints_vault_shares(self, staked_env):
        env = staked_env
        assert env.vault.total_supply() == 100
        assert env.vault.balance_of(ALICE) == 100
        assert env.vault.total_assets() == 100
        assert env.minter.total_assets() == 900

    def test_second_pending_proposal_rejected(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        env.coordinator.close_and_propose_vault_batch(env.relayer, env.asset, env.vault.address)
        current = env.vault.current_batch_id()

        with pytest.raises(ProposalAlreadyPending):
            env.coordinator.close_and_propose_vault_batch(env.relayer, env.asset, env.vault.address)
        assert env.vault.get_batch(current).is_open


class TestProfitCascade:
    """Отрицательный depeg: позиция ledger выросла."""

    def test_insurance_deficit_filled(self, insured_env, settle_minter):
        env = insured_env
        settle_minter(env, deposited=1000)
        env.position.accrue(200)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )

        assert receipt.details["depeg"] == -200
        assert receipt.distribution.total_profit_shares == 167
        assert receipt.distribution.insurance_shares == 84
        assert receipt.distribution.vault_adapter_shares == 0
        assert env.position.balance_of(INSURANCE) == 84
        assert env.position.balance_of(env.minter_adapter.address) == 916

    def test_insurance_takes_everything_below_target(self, settle_minter):
        env = build_environment(
            settlement_config=SettlementConfig(insurance=INSURANCE, insurance_bps=5000)
        )
        settle_minter(env, deposited=1000)
        env.position.accrue(200)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )
        assert receipt.distribution.insurance_shares == 167
        assert env.position.balance_of(env.minter_adapter.address) == 833

    def test_vault_profit_share_and_netting(self, staked_env):
        env = staked_env
        env.position.accrue(200)
        env.vault.request_stake(BOB, 60)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address, profit_share_bps=5000
        )

        assert receipt.details["depeg"] == -180
        assert receipt.distribution.total_profit_shares == 150
        assert receipt.distribution.vault_adapter_shares == 75
        assert receipt.details["share_price"] == 2_100_000
        assert receipt.details["netting_shares"] == 50
        assert env.position.balance_of(env.vault_adapter.address) == 225
        assert receipt.total_assets == 270

        proposal = env.ledger.get_settlement_proposal(receipt.proposal_id)
        assert proposal.yield_ == 110

        env.chain.advance(env.ledger.get_cooldown())
        env.coordinator.execute_settlement(env.relayer, receipt.proposal_id)
        assert env.vault.balance_of(BOB) == 28
        assert env.minter.total_assets() == 840
        assert env.vault.net_share_price() == 2_100_000


class TestLossRecovery:
    def test_vault_covers_ledger_loss(self, staked_env):
        env = staked_env
        env.position.realize_loss(100)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )

        assert receipt.details["depeg"] == 90
        assert receipt.loss_recovery_shares == 100
        assert env.position.balance_of(env.minter_adapter.address) == 1000
        assert env.position.balance_of(env.vault_adapter.address) == 0

    def test_shortfall_rolls_back_everything(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.position.realize_loss(100)
        batch_id = env.vault.current_batch_id()

        with pytest.raises(InsufficientBalance):
            env.coordinator.close_and_propose_vault_batch(env.relayer, env.asset, env.vault.address)

        assert env.vault.get_batch(batch_id).is_open
        assert env.vault.current_batch_id() == batch_id
        assert env.ledger.latest_proposal_for_batch(env.vault.address, batch_id) is None


class TestFees:
    """Management fee за год на 100 assets × 2%."""

    @pytest.fixture
    def fee_env(self, settle_minter, settle_vault):
        env = build_environment(management_fee_bps=200)
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        settle_vault(env)
        env.chain.advance(SECONDS_PER_YEAR)
        return env

    def test_quote_is_read_only(self, fee_env):
        quote = fee_env.coordinator.quote_fees(fee_env.vault.address)
        assert quote.management_fee == 2
        assert fee_env.position.balance_of(fee_env.treasury) == 0

    def test_fee_shares_go_to_treasury(self, fee_env, settle_vault):
        env = fee_env
        receipt = settle_vault(env)

        assert receipt.fee_quote.management_fee == 2
        assert receipt.details["fee_shares"] == 2
        assert env.position.balance_of(env.treasury) == 2
        proposal = env.ledger.get_settlement_proposal(receipt.proposal_id)
        assert proposal.fees_charged == 2
        assert env.vault.fee_state().last_charged_management == proposal.last_fees_charged_management

    def test_performance_fee_charged_once_per_gain(self, settle_minter, settle_vault):
        env = build_environment(SettlerConfig(cooldown_seconds=0), performance_fee_bps=2000)
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        settle_vault(env)
        env.position.accrue(200)

        # время не идёт: performance fee не начисляется, watermark на месте
        for _ in range(3):
            receipt = settle_vault(env)
            assert receipt.fee_quote.elapsed_performance == 0
            assert receipt.fee_quote.performance_fee == 0
        assert env.position.balance_of(env.treasury) == 0
        assert env.vault.fee_state().share_price_watermark == 1_000_000

        env.chain.advance(86_400)
        receipt = settle_vault(env)
        assert receipt.fee_quote.performance_fee == 4
        assert env.position.balance_of(env.treasury) == 3
        assert env.vault.fee_state().share_price_watermark == 1_160_000

        # та же прибыль второй раз не списывается
        env.chain.advance(86_400)
        receipt = settle_vault(env)
        assert receipt.fee_quote.performance_fee == 0
        assert env.position.balance_of(env.treasury) == 3


class TestGuards:
    def test_invalid_profit_share_before_any_read(self, env):
        with pytest.raises(InvalidBasisPoints):
            env.coordinator.close_and_propose_vault_batch(
                env.relayer, env.asset, make_address("vault:unknown"), profit_share_bps=10_001
            )

    def test_execute_twice(self, env, settle_minter, settle_vault):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        receipt = settle_vault(env)
        with pytest.raises(BatchAlreadySettled):
            env.coordinator.execute_settlement(env.relayer, receipt.proposal_id)

    def test_propose_open_batch_rejected(self, env):
        with pytest.raises(BatchNotClosed):
            env.coordinator.propose_settlement(
                env.relayer, env.asset, env.vault.address, env.vault.current_batch_id()
            )


class TestProposeSettlement:
    """Proposal для batch, закрытого ранее."""

    def test_after_separate_close(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        closed = env.coordinator.close_vault_batch(env.relayer, env.vault.address)

        receipt = env.coordinator.propose_settlement(
            env.relayer, env.asset, env.vault.address, closed.batch_id
        )
        assert receipt.netted == 100
        assert env.position.balance_of(env.vault_adapter.address) == 100

    def test_after_cancel(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        first = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )
        env.coordinator.cancel_proposal(env.guardian, first.proposal_id)

        second = env.coordinator.propose_settlement(
            env.relayer, env.asset, env.vault.address, first.batch_id
        )
        assert second.details["replaces"] == first.proposal_id
        assert second.netted == 100
        assert second.total_assets == 100
        # переводы не повторяются
        assert env.position.balance_of(env.vault_adapter.address) == 100

        env.chain.advance(env.ledger.get_cooldown())
        env.coordinator.execute_settlement(env.relayer, second.proposal_id)
        assert env.vault.balance_of(ALICE) == 100


class TestCancelledBatch:
    """Отменённый batch должен быть предложен заново до новых settlements."""

    def test_vault_cancel_blocks_new_settlements(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.vault.request_stake(ALICE, 100)
        first = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )
        env.coordinator.cancel_proposal(env.guardian, first.proposal_id)
        env.vault.request_stake(BOB, 10)
        open_batch = env.vault.current_batch_id()

        with pytest.raises(CancelledBatchPending) as exc:
            env.coordinator.close_and_propose_vault_batch(
                env.relayer, env.asset, env.vault.address
            )
        assert exc.value.batch_id == first.batch_id
        with pytest.raises(CancelledBatchPending):
            env.coordinator.close_and_propose_minter_batch(env.relayer, env.asset)
        with pytest.raises(CancelledBatchPending):
            env.coordinator.close_and_request_custodial_batch(env.relayer, env.asset)

        # ничего не закрыто и не переведено повторно
        assert env.vault.current_batch_id() == open_batch
        assert env.vault.get_batch(open_batch).is_open
        assert env.position.balance_of(env.vault_adapter.address) == 100

        second = env.coordinator.propose_settlement(
            env.relayer, env.asset, env.vault.address, first.batch_id
        )
        env.chain.advance(env.ledger.get_cooldown())
        env.coordinator.execute_settlement(env.relayer, second.proposal_id)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )
        assert receipt.details["depeg"] == 0
        assert receipt.loss_recovery_shares == 0
        assert receipt.netted == 10
        assert env.position.balance_of(env.vault_adapter.address) == 110

    def test_minter_cancel_blocks_vault_settlement(self, env, settle_minter):
        settle_minter(env, deposited=1000)
        env.token.mint(INSTITUTION, 500)
        env.minter.record_mint(INSTITUTION, 500)
        first = env.coordinator.close_and_propose_minter_batch(env.relayer, env.asset)
        env.coordinator.cancel_proposal(env.guardian, first.proposal_id)
        env.vault.request_stake(ALICE, 100)

        with pytest.raises(CancelledBatchPending):
            env.coordinator.close_and_propose_vault_batch(
                env.relayer, env.asset, env.vault.address
            )

        second = env.coordinator.propose_settlement(
            env.relayer, env.asset, env.minter.address, first.batch_id
        )
        env.chain.advance(env.ledger.get_cooldown())
        env.coordinator.execute_settlement(env.relayer, second.proposal_id)

        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address
        )
        assert receipt.details["depeg"] == 0
        assert receipt.loss_recovery_shares == 0
        assert env.position.balance_of(env.minter_adapter.address) == 1400
