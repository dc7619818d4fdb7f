"""
Engagement Analytics Backend Package.

FastAPI service layer that mines the main_analysis feature table and the
user/entity engagement tables for conversion signals: behavioral drivers per
outcome, exposure-combination patterns, and persona-level summary statistics.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration and database
    - models: Pydantic schemas and enums
    - services: Analysis services
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
