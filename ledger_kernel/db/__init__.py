"""Database layer: declarative base, engine/session management, store guards."""
