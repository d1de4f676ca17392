"""
Core domain models, integer math primitives, and invariants.

Модули core не зависят от внешних систем (ledger, registry, agent):
они работают только с переданными значениями.
"""
