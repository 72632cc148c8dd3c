"""
Meet Import - swim meet file ingestion and team records service.

This package contains the complete application:
- core: Framework-agnostic parsing, matching and records logic
- infrastructure: Snowflake connection and repositories
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
