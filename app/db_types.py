"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from decimal import Decimal

from sqlalchemy import JSON

# Use JSON instead of JSONB for cross-database compatibility
# JSONB is PostgreSQL-specific, JSON works with both SQLite and PostgreSQL
JSONType = JSON

# Money is stored as NUMERIC(14, 2) and rounded to the paisa
MONEY_QUANTUM = Decimal("0.01")
