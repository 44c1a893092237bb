"""
tamebot test suite.

- tests/unit/          : fast tests against in-memory fakes
- tests/integration/   : PostgreSQL via testcontainers

Select with markers: ``pytest -m unit`` or ``pytest -m "integration and database"``.
"""
