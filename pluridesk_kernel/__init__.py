"""
PluriDesk Kernel

Shared foundation for the job financial lifecycle engine:
- Currency-safe Money values (no implicit conversion, no implicit currency)
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- SQLAlchemy declarative base, engine and session scope
- Monotonic per-owner sequence numbers
"""

__version__ = "0.1.0"
