# ============================================================================
# PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: CREATE statements for the cache and lease tables
# LAST_REVIEWED: 18 SEP 2026
# EXPORTS: PydanticToSQL, ColumnSpec
# DEPENDENCIES: pydantic, psycopg
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

The persisted models (CacheEntry, InstanceLock) are the only definition
of the tables. Each carries its table metadata as ClassVars:

    __sql_table__        table name
    __sql_schema__       schema name (overridable per generator)
    __sql_primary_key__  column list
    __sql_indexes__      [(index_name, columns[, partial_where]), ...]

Column types follow the annotation. Field(json_schema_extra={"sql_type": ...})
forces a type; max_length on a str field gives VARCHAR(n).

Every statement is a psycopg sql.Composed, so identifiers are quoted by
psycopg and nothing is concatenated by hand.

Usage:
    generator = PydanticToSQL(schema_name="cfcache")
    async with conn.transaction():
        for stmt in generator.generate_all():
            await conn.execute(stmt)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, Union, get_args, get_origin

from annotated_types import MaxLen
from psycopg import sql
from pydantic import BaseModel
from pydantic.fields import FieldInfo

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "cfcache"

_SCALAR_TYPES = {
    bool: "BOOLEAN",
    int: "INTEGER",
    float: "DOUBLE PRECISION",
    datetime: "TIMESTAMPTZ",
}


@dataclass(frozen=True)
class ColumnSpec:
    """One column derived from a model field."""

    name: str
    sql_type: str
    nullable: bool
    default: Optional[sql.Composable] = None

    def render(self, primary_key: List[str]) -> sql.Composed:
        parts = [sql.Identifier(self.name), sql.SQL(" " + self.sql_type)]
        # primary key columns are NOT NULL already
        if not self.nullable and self.name not in primary_key:
            parts.append(sql.SQL(" NOT NULL"))
        if self.default is not None:
            parts.extend([sql.SQL(" DEFAULT "), self.default])
        return sql.Composed(parts)


class PydanticToSQL:
    """DDL for the persisted models."""

    def __init__(self, schema_name: Optional[str] = None):
        """
        Args:
            schema_name: Schema for every table; defaults to each model's
                __sql_schema__
        """
        self.schema_name = schema_name

    # =========================================================================
    # MODEL METADATA
    # =========================================================================

    @staticmethod
    def persisted_models() -> List[Type[BaseModel]]:
        """Models backed by tables, in creation order."""
        from core.models import CacheEntry, InstanceLock

        return [CacheEntry, InstanceLock]

    @staticmethod
    def get_model_metadata(model: Type[BaseModel]) -> Dict[str, Any]:
        """
        Table metadata declared on the model.

        Names like __sql_table__ end in a double underscore, so Python does
        not mangle them and plain getattr finds them.
        """
        table = getattr(model, "__sql_table__", None)
        if not table:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")

        primary_key = getattr(model, "__sql_primary_key__", [])
        if isinstance(primary_key, str):
            primary_key = [primary_key]

        return {
            "table": table,
            "schema": getattr(model, "__sql_schema__", DEFAULT_SCHEMA),
            "primary_key": list(primary_key),
            "indexes": list(getattr(model, "__sql_indexes__", [])),
        }

    def _qualified(self, meta: Dict[str, Any]) -> sql.Identifier:
        return sql.Identifier(self.schema_name or meta["schema"], meta["table"])

    def expected_tables(self) -> List[str]:
        return [self.get_model_metadata(model)["table"] for model in self.persisted_models()]

    # =========================================================================
    # COLUMNS
    # =========================================================================

    @staticmethod
    def _unwrap_optional(annotation: Any):
        """(inner type, nullable) for Optional[X]; (annotation, False) otherwise."""
        if get_origin(annotation) is Union:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) == 1:
                return args[0], True
        return annotation, False

    @staticmethod
    def python_type_to_sql(annotation: Any, field_info: FieldInfo) -> str:
        """PostgreSQL type for one field (Optional already unwrapped)."""
        extra = field_info.json_schema_extra
        if isinstance(extra, dict) and extra.get("sql_type"):
            return str(extra["sql_type"])

        if annotation is str:
            max_length = next(
                (m.max_length for m in field_info.metadata if isinstance(m, MaxLen)),
                None,
            )
            return f"VARCHAR({max_length})" if max_length else "VARCHAR"

        if annotation in _SCALAR_TYPES:
            return _SCALAR_TYPES[annotation]

        # dicts, lists and anything structured
        return "JSONB"

    @staticmethod
    def _default_for(field_info: FieldInfo, sql_type: str) -> Optional[sql.Composable]:
        default = field_info.default
        if isinstance(default, bool):
            return sql.SQL("true" if default else "false")
        if isinstance(default, (int, float, str)):
            return sql.Literal(default)
        if field_info.default_factory is not None and sql_type == "TIMESTAMPTZ":
            return sql.SQL("NOW()")
        return None

    def column_specs(self, model: Type[BaseModel]) -> List[ColumnSpec]:
        specs = []
        for name, field_info in model.model_fields.items():
            annotation, nullable = self._unwrap_optional(field_info.annotation)
            sql_type = self.python_type_to_sql(annotation, field_info)
            specs.append(ColumnSpec(
                name=name,
                sql_type=sql_type,
                nullable=nullable,
                default=self._default_for(field_info, sql_type),
            ))
        return specs

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """CREATE TABLE IF NOT EXISTS for one model."""
        meta = self.get_model_metadata(model)
        primary_key = meta["primary_key"]

        body = [spec.render(primary_key) for spec in self.column_specs(model)]
        if primary_key:
            body.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(map(sql.Identifier, primary_key))
            ))

        logger.debug(f"Generating table {meta['table']} from {model.__name__}")
        return sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(
            self._qualified(meta),
            sql.SQL(", ").join(body),
        )

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """CREATE INDEX IF NOT EXISTS for each __sql_indexes__ entry."""
        meta = self.get_model_metadata(model)
        statements = []

        for index in meta["indexes"]:
            name, columns = index[0], index[1]
            if isinstance(columns, str):
                columns = [columns]

            stmt = sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} ({})").format(
                sql.Identifier(name),
                self._qualified(meta),
                sql.SQL(", ").join(map(sql.Identifier, columns)),
            )
            if len(index) > 2 and index[2]:
                stmt = sql.SQL("{} WHERE {}").format(stmt, sql.SQL(index[2]))
            statements.append(stmt)

        return statements

    def generate_comment(self, model: Type[BaseModel]) -> sql.Composed:
        """COMMENT ON TABLE using the first line of the model docstring."""
        meta = self.get_model_metadata(model)
        summary = (model.__doc__ or model.__name__).strip().splitlines()[0]
        return sql.SQL("COMMENT ON TABLE {} IS {}").format(
            self._qualified(meta),
            sql.Literal(summary),
        )

    def generate_all(self) -> List[sql.Composed]:
        """
        Schema, tables (with comments), then indexes.

        Returns:
            Statements in execution order
        """
        models = self.persisted_models()
        schema = self.schema_name or self.get_model_metadata(models[0])["schema"]

        statements = [
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema)),
            sql.SQL("COMMENT ON SCHEMA {} IS {}").format(
                sql.Identifier(schema),
                sql.Literal("Codeforces API cache and instance leases"),
            ),
        ]
        for model in models:
            statements.append(self.generate_table(model))
            statements.append(self.generate_comment(model))
        for model in models:
            statements.extend(self.generate_indexes(model))

        logger.info(f"Generated {len(statements)} DDL statements for schema {schema}")
        return statements


__all__ = ["PydanticToSQL", "ColumnSpec", "DEFAULT_SCHEMA"]
