"""
Billing module - Subscriptions mirrored from the billing provider.

This module handles:
- Subscription entity and its pure state transitions
- Translating Stripe webhook events into billing events
- Reconciling subscriptions and their licenses
- The billing event log used for idempotency and replay
"""
