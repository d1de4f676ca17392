"""Общие fixtures: in-memory окружение, seed helpers и stub позиции."""

import pytest

from settler.core.domain.settlement_config import SettlementConfig
from settler.memory import build_environment, make_address


INSTITUTION = make_address("institution")
ALICE = make_address("alice")
BOB = make_address("bob")
INSURANCE = make_address("insurance")


@pytest.fixture
def env():
    """Окружение по умолчанию: cooldown 1h, без acceptance, комиссии 0."""
    return build_environment()


@pytest.fixture
def settle_minter():
    """mint/redeem заявки → close_and_propose → cooldown → execute."""

    def _settle(env, deposited: int = 0, requested: int = 0):
        if deposited:
            env.token.mint(INSTITUTION, deposited)
            env.minter.record_mint(INSTITUTION, deposited)
        if requested:
            env.minter.record_redeem_request(INSTITUTION, requested)
        receipt = env.coordinator.close_and_propose_minter_batch(env.relayer, env.asset)
        if receipt.has_proposal:
            env.chain.advance(env.ledger.get_cooldown())
            env.coordinator.execute_settlement(env.relayer, receipt.proposal_id)
        return receipt

    return _settle


@pytest.fixture
def settle_vault():
    """close_and_propose_vault_batch → cooldown → execute."""

    def _settle(env, profit_share_bps=None):
        receipt = env.coordinator.close_and_propose_vault_batch(
            env.relayer, env.asset, env.vault.address, profit_share_bps
        )
        env.chain.advance(env.ledger.get_cooldown())
        env.coordinator.execute_settlement(env.relayer, receipt.proposal_id)
        return receipt

    return _settle


@pytest.fixture
def insured_env():
    """Окружение с insurance 1000 bps и выключенным treasury."""
    return build_environment(
        settlement_config=SettlementConfig(insurance=INSURANCE, insurance_bps=1000)
    )
