"""
Database infrastructure for Tamebot.

- base: declarative Base and column mixins
- service: DatabaseService (async engine, sessions, transactions)
"""
