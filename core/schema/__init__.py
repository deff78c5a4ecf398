# ============================================================================
# SCHEMA MODULE
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - Schema generation from Pydantic models
# PURPOSE: DDL for the cache and lease tables, derived from the models
# LAST_REVIEWED: 18 SEP 2026
# ============================================================================

from core.schema.sql_generator import DEFAULT_SCHEMA, ColumnSpec, PydanticToSQL

__all__ = [
    "PydanticToSQL",
    "ColumnSpec",
    "DEFAULT_SCHEMA",
]
