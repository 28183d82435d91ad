"""Database layer: declarative base, money types, engine and session scopes."""
