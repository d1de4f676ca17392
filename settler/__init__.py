"""
settler — batch settlement engine для tokenized vault протокола

Закрывает batch заявок, сверяет их с активами во внешних позициях,
начисляет комиссии, распределяет прибыль и публикует proposal с
cooldown для settlement ledger.
"""

__version__ = "0.1.0"
