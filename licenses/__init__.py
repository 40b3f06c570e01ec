"""
Licenses module - License keys and the license lifecycle.

This module handles:
- License key encoding, checksums and the signing context
- License entity and domain logic
- Issuing and validating keys
- Administrative lifecycle (revoke, suspend, reactivate, extend)
- The expiry sweep
"""
