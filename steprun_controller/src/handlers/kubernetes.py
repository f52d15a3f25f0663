"""
Kubernetes handler - runs a step's commands as a Kubernetes Job.
"""

import logging
import time
from typing import Any, Dict, Optional

from kubernetes.client.rest import ApiException

from steprun_controller.src.errors import StepFailure
from steprun_controller.src.handlers.base import CancelSignal, HandlerOutcome
from steprun_controller.src.k8s import (
    build_job,
    delete_job,
    ensure_namespace,
    get_batch_api,
    get_job_status,
)
from steprun_controller.src.models.event import Event
from steprun_controller.src.services.log_collector import collect_logs

logger = logging.getLogger(__name__)

class KubernetesJobHandler:
    def __init__(self, namespace: str, poll_interval: float = 2.0):
        self.namespace = namespace
        self.poll_interval = poll_interval

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        image = config.get("image")
        commands = config.get("commands")
        if not image or not commands:
            raise StepFailure("Kubernetes step needs 'image' and 'commands'")
        if isinstance(commands, str):
            commands = [commands]

        meta = event.metadata
        job = build_job(
            run_id=str(meta.get("run_id", "adhoc")),
            step_order=int(meta.get("step_order", 0)),
            step_name=str(meta.get("step", "step")),
            image=image,
            commands=commands,
            env_vars=config.get("env"),
            deadline=config.get("deadline"),
            namespace=self.namespace,
        )
        job_name = job.metadata.name

        ensure_namespace(self.namespace)
        self._create(job)

        status = self.wait_for_job(job_name, cancel)
        logs = collect_logs(job_name, self.namespace)

        if status == "cancelled":
            delete_job(job_name, self.namespace)
        exit_info = {"job": job_name, "status": status, "logs": logs}
        return HandlerOutcome(ok=status == "succeeded", exit_info=exit_info)

    def _create(self, job):
        batch_v1 = get_batch_api()
        logger.info(f"Creating job {job.metadata.name}")
        try:
            batch_v1.create_namespaced_job(namespace=self.namespace, body=job)
        except ApiException as e:
            if e.status != 409:
                raise
            # Left over from an earlier attempt with the same run id
            logger.warning(f"Job {job.metadata.name} already exists, recreating")
            delete_job(job.metadata.name, self.namespace)
            time.sleep(self.poll_interval)
            batch_v1.create_namespaced_job(namespace=self.namespace, body=job)

    def wait_for_job(self, job_name: str, cancel: Optional[CancelSignal] = None) -> str:
        """
        Poll a job until it finishes or the step is cancelled.
        Returns 'succeeded', 'failed' or 'cancelled'.
        """
        batch_v1 = get_batch_api()

        while True:
            if cancel is not None and cancel.is_set():
                logger.warning(f"Job {job_name} cancelled")
                return "cancelled"

            try:
                job = batch_v1.read_namespaced_job(name=job_name, namespace=self.namespace)
                status = get_job_status(job)
                if status in ("succeeded", "failed"):
                    return status
            except ApiException as e:
                logger.error(f"Error checking job status: {e}")

            if cancel is not None:
                cancel.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)
