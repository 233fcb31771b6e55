"""
Fibery SDK Test Suite.

This package contains:
- unit/: Unit tests (pure, no network)
- integration/: Transport and cache tests against a mock HTTP backend
"""
