"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for order values, commissions, balances, withdrawals
# Precision: 18 digits total, 2 after decimal point
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(18, 2)

# Commission rate type stored as a fraction (0.15 = 15%)
# Precision: 10 digits total, 6 after decimal point
# Keeps level-2 products such as 0.1234 * 0.30 exact
RateType = DECIMAL(10, 6)
