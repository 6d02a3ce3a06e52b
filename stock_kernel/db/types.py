"""
Module: stock_kernel.db.types
Responsibility: Column types for physical stock quantities.  Every model
    passes these to mapped_column() so that bags, weights and quintals are
    stored with identical precision system-wide.
Architecture position: Kernel > DB.  May be imported by models/.
"""

from sqlalchemy import BigInteger, Numeric, String

# Whole bag counts
BAGS = BigInteger

# Net weight in kilograms, gram precision
WEIGHT = Numeric(18, 3)

# Quintals (100 kg)
QUINTALS = Numeric(18, 4)

# Packaging factor
KG_PER_BAG = Numeric(10, 3)

PERCENTAGE = Numeric(9, 4)

# Codes, varieties, product types
SHORT_CODE = String(50)

LONG_TEXT = String(1000)
