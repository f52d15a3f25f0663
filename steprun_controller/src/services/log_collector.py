"""
Collect logs from the pods of step jobs.
"""

import logging
from typing import Optional
from kubernetes.client.rest import ApiException

from steprun_controller.src.k8s.client import get_core_api

logger = logging.getLogger(__name__)

LOG_TAIL_LINES = 1000

def get_job_pod_name(job_name: str, namespace: str) -> Optional[str]:
    """Get the pod name for a job."""
    try:
        pods = get_core_api().list_namespaced_pod(
            namespace=namespace,
            label_selector=f"job-name={job_name}",
        )
    except ApiException as e:
        logger.error(f"Failed to get pod for job {job_name}: {e}")
        return None

    if pods.items:
        return pods.items[0].metadata.name
    return None

def collect_logs(job_name: str, namespace: str) -> str:
    """Collect the log tail from a job's pod."""
    pod_name = get_job_pod_name(job_name, namespace)
    if not pod_name:
        return "No pod found for job"

    try:
        return get_core_api().read_namespaced_pod_log(
            name=pod_name,
            namespace=namespace,
            tail_lines=LOG_TAIL_LINES,
        )
    except ApiException as e:
        if e.status == 400:
            # Container never started
            return "Pod did not start"
        logger.error(f"Failed to collect logs for {pod_name}: {e}")
        return f"Error collecting logs: {e.reason}"
