"""
Kubernetes client initialization and job operations.
"""

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from typing import Optional
import logging

from steprun_controller.src.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_batch_v1 = None
_core_v1 = None

def init_k8s_client() -> bool:
    """Load cluster credentials and build the API clients."""
    global _batch_v1, _core_v1

    try:
        if settings.k8s_in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes config")
        else:
            config.load_kube_config()
            logger.info("Loaded local Kubernetes config")
    except config.ConfigException as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        return False

    api_client = client.ApiClient()
    _batch_v1 = client.BatchV1Api(api_client)
    _core_v1 = client.CoreV1Api(api_client)
    return True

def get_batch_api() -> client.BatchV1Api:
    """Get BatchV1 API client for Job operations."""
    if _batch_v1 is None and not init_k8s_client():
        raise RuntimeError("Kubernetes client is not available")
    return _batch_v1

def get_core_api() -> client.CoreV1Api:
    """Get CoreV1 API client for Pod operations."""
    if _core_v1 is None and not init_k8s_client():
        raise RuntimeError("Kubernetes client is not available")
    return _core_v1

def ensure_namespace(namespace: Optional[str] = None):
    """Create the step namespace if it does not exist yet."""
    namespace = namespace or settings.k8s_namespace
    core_v1 = get_core_api()

    try:
        core_v1.read_namespace(name=namespace)
    except ApiException as e:
        if e.status != 404:
            raise
        core_v1.create_namespace(
            body=client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace))
        )
        logger.info(f"Created namespace '{namespace}'")

def delete_job(job_name: str, namespace: Optional[str] = None):
    """Delete a job and its pods."""
    namespace = namespace or settings.k8s_namespace

    try:
        get_batch_api().delete_namespaced_job(
            name=job_name,
            namespace=namespace,
            body=client.V1DeleteOptions(propagation_policy="Foreground"),
        )
        logger.info(f"Deleted job {job_name}")
    except ApiException as e:
        if e.status != 404:
            logger.error(f"Failed to delete job {job_name}: {e}")
