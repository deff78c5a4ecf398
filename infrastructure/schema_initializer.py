# ============================================================================
# SCHEMA INITIALIZER
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - Database bootstrap
# PURPOSE: Create the cfcache schema, cache and lease tables at startup
# CREATED: 16 SEP 2026
# ============================================================================
"""
SchemaInitializer

Runs three steps in order and records each one:

    test_connection   SELECT version(); a failure ends the run
    deploy_schema     every PydanticToSQL statement in one transaction
    verify_tables     information_schema lookup; missing tables only warn

All DDL is IF NOT EXISTS, so main.py can run it on every start when
AUTO_BOOTSTRAP_SCHEMA=true. dry_run renders the statements instead of
executing them and skips verification.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.schema import PydanticToSQL
from repositories.database import SCHEMA

logger = logging.getLogger(__name__)

StepOutcome = Tuple[str, Dict[str, Any]]


class StepFailed(Exception):
    """A step finished but its check did not pass; details are kept."""

    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__(message)
        self.details = details


@dataclass
class StepResult:
    name: str
    status: str  # success | failed
    message: str = ""
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass
class InitializationResult:
    schema: str
    timestamp: str
    success: bool = False
    steps: List[StepResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        ok = sum(1 for s in self.steps if s.ok)
        return {
            "schema": self.schema,
            "timestamp": self.timestamp,
            "success": self.success,
            "steps": [s.__dict__.copy() for s in self.steps],
            "errors": self.errors,
            "warnings": self.warnings,
            "summary": {"total_steps": len(self.steps), "successful": ok, "failed": len(self.steps) - ok},
        }


class SchemaInitializer:

    def __init__(self, pool: AsyncConnectionPool, schema_name: str = SCHEMA):
        self.pool = pool
        self.schema_name = schema_name
        self.generator = PydanticToSQL(schema_name=schema_name)

    async def initialize(self, dry_run: bool = False) -> InitializationResult:
        result = InitializationResult(
            schema=self.schema_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

        connected = await self._step(result, "test_connection", self._test_connection)
        if not connected.ok:
            result.errors.append(f"Connection failed: {connected.error}")
            return result

        deployed = await self._step(result, "deploy_schema", lambda: self._deploy_schema(dry_run))
        if not deployed.ok:
            result.errors.append(f"Schema deployment failed: {deployed.error}")
        elif not dry_run:
            verified = await self._step(result, "verify_tables", self._verify_tables)
            if not verified.ok:
                result.warnings.append(f"Verification issue: {verified.error}")

        result.success = not result.errors
        logger.info(
            f"Schema {self.schema_name} bootstrap {'succeeded' if result.success else 'failed'}"
            f"{' (dry run)' if dry_run else ''}: {[s.name + '=' + s.status for s in result.steps]}"
        )
        return result

    async def _step(
        self,
        result: InitializationResult,
        name: str,
        action: Callable[[], Awaitable[StepOutcome]],
    ) -> StepResult:
        try:
            message, details = await action()
            step = StepResult(name=name, status="success", message=message, details=details)
        except StepFailed as e:
            step = StepResult(name=name, status="failed", message=str(e), error=str(e), details=e.details)
        except Exception as e:
            logger.error(f"Schema step {name} failed: {e}")
            step = StepResult(name=name, status="failed", message=f"{name} failed", error=str(e))
        result.steps.append(step)
        return step

    async def _test_connection(self) -> StepOutcome:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            cursor = await conn.execute("SELECT version() AS version, current_database() AS db")
            row = await cursor.fetchone()
        return f"Connected to {row['db']}", {"database": row["db"], "version": row["version"][:50]}

    async def _deploy_schema(self, dry_run: bool) -> StepOutcome:
        statements = self.generator.generate_all()

        async with self.pool.connection() as conn:
            if dry_run:
                rendered = [stmt.as_string(conn) for stmt in statements]
                return f"Rendered {len(rendered)} statements", {"statements": rendered}

            async with conn.transaction():
                for stmt in statements:
                    await conn.execute(stmt)

        return (
            f"Executed {len(statements)} statements",
            {"statements_executed": len(statements), "schema": self.schema_name},
        )

    async def _verify_tables(self) -> StepOutcome:
        expected = self.generator.expected_tables()
        async with self.pool.connection() as conn:
            cursor = await conn.execute(
                "SELECT table_name FROM information_schema.tables WHERE table_schema = %s",
                (self.schema_name,),
            )
            existing = [row[0] for row in await cursor.fetchall()]

        missing = [table for table in expected if table not in existing]
        details = {"expected": expected, "existing": existing, "missing": missing}
        if missing:
            raise StepFailed(f"Missing tables: {missing}", details)
        return f"All {len(expected)} expected tables exist", details


__all__ = [
    "SchemaInitializer",
    "InitializationResult",
    "StepResult",
]
