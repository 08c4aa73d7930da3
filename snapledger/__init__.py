"""
SnapLedger - Source Package

A personal finance tracker that turns screenshots of payment history
into transactions.

DESIGN PRINCIPLES:
1. AI extracts → Human confirms → System saves
2. Model output is never trusted as-is
3. One bad line item never sinks the batch
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SnapLedger Team"
