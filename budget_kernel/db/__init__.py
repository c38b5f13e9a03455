"""Database layer: declarative base and engine management."""
