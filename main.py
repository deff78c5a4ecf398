# ============================================================================
# CODEFORCES ACCESS LAYER - MAIN APPLICATION
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Core - FastAPI application entry point
# PURPOSE: Build the object graph, run the duty lease, expose health
# CREATED: 18 SEP 2026
# ============================================================================
"""
Codeforces Access Layer Main Application

FastAPI application that:
1. Opens the database pool (optionally bootstrapping the cfcache schema)
2. Builds the request pool, API client and cached data services
3. Runs the duty lease so one instance refreshes shared caches
4. Exposes /livez, /readyz and /health

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH
from core.clock import SystemClock
from core.config import get_defaults
from core.logging import configure_logging
from infrastructure import CodeforcesClient, SchemaInitializer, create_request_pool
from repositories import CacheRepository, InstanceLockRepository, close_pool, init_pool
from services import (
    CacheService,
    ContestRatingChangeService,
    ContestService,
    DutyRunner,
    InstanceLockService,
    ProblemService,
    RatingChangeService,
    SubmissionService,
)

# Health check system
from health import health_router, get_registry
from health.checks import set_client, set_data_services, set_duty_runner, set_pool

defaults = get_defaults()
configure_logging(level=defaults.service.log_level)
logger = logging.getLogger(__name__)


def make_cache_refresh(contests: ContestService, problems: ProblemService):
    """Duty work: keep the shared contest and problem caches warm."""

    async def refresh_shared_caches() -> None:
        contest_result = await contests.get_contests()
        problem_result = await problems.get_problems()
        logger.info(
            f"Shared caches refreshed: contests={contest_result.source.value if contest_result else 'none'}, "
            f"problems={problem_result.source.value if problem_result else 'none'}"
        )

    return refresh_shared_caches


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    logger.info(f"Starting Codeforces access layer v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    problems = defaults.validate()
    if problems:
        for problem in problems:
            logger.error(f"Configuration problem: {problem}")
        raise RuntimeError(f"Invalid configuration ({len(problems)} problems)")

    clock = SystemClock()

    pool = await init_pool()
    set_pool(pool)
    logger.info("Database pool initialized")

    if defaults.service.auto_bootstrap_schema:
        logger.info("Auto-bootstrap enabled, deploying schema...")
        result = await SchemaInitializer(pool).initialize()
        if result.success:
            logger.info("Schema bootstrap completed successfully")
        else:
            logger.warning(f"Schema bootstrap had issues: {result.errors}")

    request_pool = await create_request_pool(defaults.codeforces, clock)
    client = CodeforcesClient(request_pool, defaults.codeforces, clock)
    set_client(client)

    cache = CacheService(CacheRepository(pool), clock)
    data_services = {
        "problems": ProblemService(client, cache, clock, defaults.cache),
        "contests": ContestService(client, cache, clock, defaults.cache),
        "rating_changes": RatingChangeService(client, cache, clock, defaults.cache),
        "contest_rating_changes": ContestRatingChangeService(client, cache, clock, defaults.cache),
        "submissions": SubmissionService(client, cache, clock, defaults.cache),
    }
    set_data_services(data_services.values())

    app.state.clock = clock
    app.state.client = client
    app.state.services = data_services

    runner = None
    if defaults.service.run_duty:
        lock_service = InstanceLockService(InstanceLockRepository(pool), clock)
        runner = DutyRunner(
            lock_service,
            defaults.lock,
            clock,
            work=make_cache_refresh(data_services["contests"], data_services["problems"]),
            work_interval_seconds=defaults.cache.contest_list_ttl_seconds,
        )
        await runner.start()
        set_duty_runner(runner)
        logger.info("Duty runner started")

    logger.info(f"Health checks initialized ({len(get_registry())} checks registered)")

    yield

    logger.info("Shutting down Codeforces access layer...")

    if runner is not None:
        await runner.stop()
        set_duty_runner(None)
    await client.aclose()
    await close_pool()
    set_pool(None)

    logger.info("Codeforces access layer stopped")


app = FastAPI(
    title="Codeforces Access Layer",
    description=f"Epoch {EPOCH} cached, rate-limited Codeforces API access",
    version=__version__,
    lifespan=lifespan,
)

# Health check routes (no prefix - /livez, /readyz, /health)
app.include_router(health_router)


@app.get("/")
async def root():
    return {
        "service": "Codeforces Access Layer",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
