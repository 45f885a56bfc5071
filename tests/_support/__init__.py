"""Shared test helpers (clock, seeding)."""
