"""
Core Lending Engine

Repayment schedule generation, FIFO payment allocation, due-amount and fine
calculation, and account state evaluation for loans and subscription plans.
All financial math uses Decimal.
"""

__version__ = "1.0.0"
