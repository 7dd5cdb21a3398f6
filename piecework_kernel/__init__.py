"""
Piecework Kernel

Shared foundation for the piece-rate payroll derivation engine:
- Decimal domain records and report snapshots
- Structured JSON logging
- Typed exceptions and warnings
- SQLAlchemy base, engine and immutability listeners
"""

__version__ = "0.1.0"
