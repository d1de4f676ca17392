"""
Contract Validation Module

Валидация JSON документов settler (proposal, settlement config, settler config).
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    SettlementConfigValidator,
    SettlementProposalValidator,
    SettlerConfigValidator,
    ValidationError,
    validate_settlement_config,
    validate_settlement_proposal,
    validate_settler_config,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SettlementProposalValidator",
    "SettlementConfigValidator",
    "SettlerConfigValidator",
    # Errors
    "ValidationError",
    # Functions
    "validate_settlement_proposal",
    "validate_settlement_config",
    "validate_settler_config",
]
