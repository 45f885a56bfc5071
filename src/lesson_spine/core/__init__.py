"""Core primitives: enums, records, errors, logging, timestamps, ORM, config."""
