import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from sqlalchemy import text
from alembic.config import Config
from alembic import command
from pipeline_orchestrator.core.config import settings
from pipeline_orchestrator.core.logging import configure_logging
from pipeline_orchestrator.api.routes import router as api_router
from pipeline_orchestrator.db.session import engine

configure_logging(settings.log_level)
log = logging.getLogger(__name__)


def wait_for_database(max_retries: int = 30, retry_delay: float = 1.0) -> None:
    """Block until the job database accepts connections."""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("Job database <%s> reachable", engine.url.render_as_string(hide_password=True))
            return
        except Exception as e:
            if attempt < max_retries - 1:
                log.warning("Job database unavailable (attempt %d/%d), next check in %ss: %s", attempt + 1, max_retries, retry_delay, e)
                time.sleep(retry_delay)
            else:
                log.error("Job database unavailable after %d attempts", max_retries)
                raise


def run_migrations() -> None:
    """Upgrade the orchestration_jobs schema to the latest revision."""
    try:
        log.info("Upgrading job database schema")
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        log.info("Job database schema up to date")
    except Exception as e:
        log.error("Job database schema upgrade failed: %s", e, exc_info=True)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the job database before accepting orchestration requests."""
    log.info("Starting %s (%s)", settings.app_name, settings.app_env)
    try:
        wait_for_database()
        run_migrations()
        log.info("Accepting orchestration requests")
    except Exception as e:
        log.error("Startup failed: %s", e, exc_info=True)
        raise
    yield
    log.info("Stopping %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)
app.include_router(api_router, prefix="/v1")


def run() -> None:
    import uvicorn
    uvicorn.run("pipeline_orchestrator.main:app", host=settings.api_host, port=settings.api_port)
