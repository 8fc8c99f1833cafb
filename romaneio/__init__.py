"""Romaneio (shipment-note) system - authentication backend.

This package covers the account side of the application:
- Users table (name/email/password hash)
- Opaque bearer tokens, stored hashed, one row per issued token
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
