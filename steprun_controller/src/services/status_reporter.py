"""
Export finished run records to a log or a database.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import selectinload, sessionmaker

from steprun_controller.src.models.db import Base, PipelineRun, PipelineStep
from steprun_controller.src.models.event import Event
from steprun_controller.src.models.step import SKIPPED, RunRecord

logger = logging.getLogger(__name__)

def to_json_value(value: Any) -> Any:
    """Make opaque exit info storable as JSON."""
    return json.loads(json.dumps(value, default=str))

class LoggingRunSink:
    """Writes one JSON line per finished run."""

    def __init__(self, logger_name: str = "steprun.runs"):
        self.logger = logging.getLogger(logger_name)

    def export(self, run_id: str, event: Event, record: RunRecord):
        payload = {
            "run_id": run_id,
            "pipeline": record.pipeline,
            "event": event.kind.value,
            "status": record.status.value,
            "steps": record.export(),
            "skipped": list(record.skipped),
        }
        self.logger.info(json.dumps(payload, default=str))

class DatabaseRunSink:
    """Persists run records and serves the run history."""

    def __init__(self, database_url: str, **engine_kwargs):
        self.engine = create_engine(database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_db(self):
        Base.metadata.create_all(self.engine)

    def export(self, run_id: str, event: Event, record: RunRecord):
        with self.SessionLocal() as session:
            run = PipelineRun(
                id=run_id,
                pipeline=record.pipeline,
                event_kind=event.kind.value,
                event_metadata=to_json_value(event.metadata),
                status=record.status.value,
            )
            for i, result in enumerate(record.results):
                run.steps.append(PipelineStep(
                    name=result.step_name,
                    step_order=i,
                    status=result.status.value,
                    exit_info=to_json_value(result.exit_info),
                ))
            offset = len(record.results)
            for i, name in enumerate(record.skipped):
                run.steps.append(PipelineStep(name=name, step_order=offset + i, status=SKIPPED))

            session.add(run)
            session.commit()
        logger.debug(f"Stored run {run_id} with status {record.status.value}")

    def list_runs(self, limit: int = 20, offset: int = 0, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = (
            select(PipelineRun)
            .options(selectinload(PipelineRun.steps))
            .order_by(PipelineRun.created_at.desc(), PipelineRun.id)
        )
        if status:
            query = query.where(PipelineRun.status == status)
        query = query.limit(limit).offset(offset)

        with self.SessionLocal() as session:
            return [self._run_dict(run) for run in session.scalars(query).all()]

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        query = (
            select(PipelineRun)
            .options(selectinload(PipelineRun.steps))
            .where(PipelineRun.id == run_id)
        )
        with self.SessionLocal() as session:
            run = session.scalars(query).one_or_none()
            return self._run_dict(run) if run else None

    def get_stats(self) -> Dict[str, Any]:
        with self.SessionLocal() as session:
            rows = session.execute(
                select(PipelineRun.status, func.count(PipelineRun.id)).group_by(PipelineRun.status)
            ).all()
        status_counts = {row[0]: row[1] for row in rows}
        return {"runs": status_counts, "total_runs": sum(status_counts.values())}

    def ping(self):
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

    @staticmethod
    def _run_dict(run: PipelineRun) -> Dict[str, Any]:
        return {
            "id": run.id,
            "pipeline": run.pipeline,
            "event_kind": run.event_kind,
            "event_metadata": run.event_metadata,
            "status": run.status,
            "created_at": run.created_at,
            "steps": [
                {
                    "name": step.name,
                    "order": step.step_order,
                    "status": step.status,
                    "exit_info": step.exit_info,
                }
                for step in run.steps
            ],
        }
