"""
Test Suite

This module contains all tests for the AgencyFlow backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # Pytest fixtures (mongomock, broker, actors)
    ├── unit/               # Unit tests
    │   ├── __init__.py
    │   ├── test_engine/    # State graphs, matrix, derivation, engine
    │   ├── test_services/  # Fan-out, chat, settings, audit, lifecycle
    │   ├── test_realtime/  # Channel broker
    │   └── test_utils/     # Token validation, time helpers
    └── integration/        # Integration tests
        ├── __init__.py
        └── test_api/       # HTTP and WebSocket endpoint tests

To run tests:
    pytest backend/tests/
    pytest backend/tests/unit/
    pytest backend/tests/integration/
"""
