"""
Upload handler - sends a coverage report to a reporting backend over HTTP.

Credentials are given to the handler explicitly (constructor or step config);
nothing is read from the process environment at upload time.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from steprun_controller.src.handlers.base import CancelSignal, HandlerOutcome, workspace_for
from steprun_controller.src.models.event import Event

logger = logging.getLogger(__name__)

DEFAULT_REPORT = "cobertura.xml"

def build_upload_params(config: Dict[str, Any], event: Event) -> Dict[str, str]:
    meta = event.metadata
    params = {
        "commit": meta.get("head_sha", ""),
        "branch": meta.get("head_branch", ""),
        "slug": meta.get("repo_full_name", ""),
        "service": "steprun",
        "build": meta.get("run_id", ""),
    }
    if meta.get("number") is not None:
        params["pr"] = str(meta["number"])
    flags = config.get("flags")
    if flags:
        params["flags"] = ",".join(flags) if isinstance(flags, list) else str(flags)
    if config.get("name"):
        params["name"] = config["name"]
    return {k: v for k, v in params.items() if v != ""}

class UploadHandler:
    def __init__(
        self,
        workspace_root: Union[str, Path],
        url: str,
        token: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.workspace_root = workspace_root
        self.url = url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def execute(self, config: Dict[str, Any], event: Event, cancel: CancelSignal) -> HandlerOutcome:
        fail_on_error = bool(config.get("fail_ci_if_error", False))
        report = workspace_for(event, self.workspace_root) / config.get("file", DEFAULT_REPORT)

        try:
            status_code = self._upload(config, event, report)
        except (OSError, httpx.HTTPError) as e:
            logger.error(f"Coverage upload failed: {e}")
            exit_info = {"uploaded": False, "error": str(e), "file": str(report)}
            return HandlerOutcome(ok=not fail_on_error, exit_info=exit_info)

        logger.info(f"Uploaded {report} ({status_code})")
        return HandlerOutcome(ok=True, exit_info={"uploaded": True, "status_code": status_code, "file": str(report)})

    def _upload(self, config: Dict[str, Any], event: Event, report: Path) -> int:
        headers = {}
        token = config.get("token") or self.token
        if token:
            headers["Authorization"] = f"token {token}"

        with report.open("rb") as f:
            content = f.read()

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(
                config.get("url") or self.url,
                params=build_upload_params(config, event),
                headers=headers,
                files={"file": (report.name, content)},
            )
            response.raise_for_status()
            return response.status_code
