"""
Infrastructure layer - external service integrations.

- snowflake: Database persistence (roster, results, meet entries,
  team records) and an in-memory mock for local development

These wrappers translate between database rows and our domain models.
"""
