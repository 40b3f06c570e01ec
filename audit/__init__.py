"""
Audit module - append-only record of every state-changing action
taken by the issuer, the validator, the reconciler and administrators.
"""
