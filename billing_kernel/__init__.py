"""
Billing Kernel

Shared foundation of the moving-company billing engine:
- Decimal money helpers with a single rounding rule
- Typed exceptions with machine-readable codes
- Document state-machine definitions
- Persistence contract, in-memory and SQL document stores
- Structured JSON logging
"""

__version__ = "0.1.0"
