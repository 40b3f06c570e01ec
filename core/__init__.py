"""
Core module for shared domain infrastructure.

This module contains:
- Domain events, exceptions and value objects
- Infrastructure abstractions (event bus, cache)
- Middleware components
- Metrics, tracing and health checks
"""
