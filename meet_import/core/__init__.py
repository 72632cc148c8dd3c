"""
Core business logic for meet imports and team records.

This module is framework-agnostic - it doesn't import FastAPI or Snowflake.
Storage is reached through small Protocols, so the importer can be tested
against in-memory repositories.
"""
