"""Background ingestion jobs: the job manager and its task queue."""

from src.pipeline.job_manager import IngestionJobManager
from src.pipeline.task_queue import TaskQueue

__all__ = [
    "IngestionJobManager",
    "TaskQueue",
]
