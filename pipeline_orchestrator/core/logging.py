import logging
import sys

CONTEXT_FIELDS = ("job_id", "run_id", "stage")


class ContextFormatter(logging.Formatter):
    """Custom formatter that handles optional job_id, run_id and stage fields."""
    def format(self, record):
        # Add default values for context fields if not present
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, '-')
        return super().format(record)


def configure_logging(level: str | int = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(
        "%(asctime)s %(levelname)s %(name)s [job_id=%(job_id)s run_id=%(run_id)s stage=%(stage)s] - %(message)s"
    ))
    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def get_logger(name: str = "pipeline-orchestrator") -> logging.Logger:
    """Root handle passed into orchestration components."""
    return logging.getLogger(name)


def context(run_id=None, stage=None, job_id=None) -> dict:
    """`extra` mapping for ContextFormatter."""
    return {
        "job_id": job_id if job_id is not None else "-",
        "run_id": run_id if run_id is not None else "-",
        "stage": stage if stage is not None else "-",
    }
