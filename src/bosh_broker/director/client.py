"""Client for the BOSH director REST API."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union
from urllib.parse import quote

import requests

from ..errors import DirectorError

if TYPE_CHECKING:
    from ..config import DirectorConfig

logger = logging.getLogger(__name__)

TASK_QUEUED = "queued"
TASK_PROCESSING = "processing"
TASK_DONE = "done"
TASK_FAILED = "fail"

ACTIVE_TASK_STATES = (TASK_QUEUED, TASK_PROCESSING)

# BOSH error codes for "release already exists" / "stemcell already exists"
_ALREADY_EXISTS_CODES = {30003, 50002}

_TASK_LOCATION = re.compile(r"/tasks/(\d+)/?$")
_REDIRECT_CODES = (301, 302, 303)


def _mentions_already_exists(text: Any) -> bool:
    return isinstance(text, str) and "already exists" in text.lower()


def _error_payload(response: requests.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"description": response.text.strip()}
    if isinstance(data, dict):
        return data
    return {"description": str(data)}


class DirectorClient:
    """
    Thin wrapper around the director endpoints the broker needs.

    Uploads block until the director finished importing the artifact, so the
    caller can rely on stemcell -> release -> deploy ordering. Deploy and
    delete return as soon as the director hands out a task id.
    """

    def __init__(
        self,
        target: str,
        user: str,
        password: Optional[str],
        *,
        verify: bool = True,
        timeout: int = 30,
        poll_interval: float = 2.0,
        upload_timeout: Optional[int] = 1800,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not target:
            raise ValueError("Director target is required")
        self.base_url = target.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.upload_timeout = upload_timeout
        self._sleep = sleep
        self._uuid: Optional[str] = None

        self.session = session or requests.Session()
        self.session.auth = (user, password or "")
        self.session.verify = verify

    @classmethod
    def from_config(cls, config: "DirectorConfig") -> "DirectorClient":
        return cls(
            config.target,
            config.user,
            config.password,
            verify=config.verify_ssl,
            timeout=config.timeout,
            poll_interval=config.task_poll_interval,
            upload_timeout=config.upload_timeout,
        )

    # ========== Director identity ==========

    def info(self) -> Dict[str, Any]:
        response = self._request("GET", "/info")
        if response.status_code != 200:
            raise self._error(response, "Director info")
        data = self._json(response, "director info")
        if not isinstance(data, dict):
            raise DirectorError("Malformed director info response", response.status_code)
        return data

    @property
    def uuid(self) -> str:
        if self._uuid is None:
            value = self.info().get("uuid")
            if not value:
                raise DirectorError("Director info did not contain a uuid")
            self._uuid = str(value)
        return self._uuid

    # ========== Uploads ==========

    def upload_stemcell(self, location: str) -> None:
        self._upload("stemcell", "/stemcells", location)

    def upload_release(self, location: str) -> None:
        self._upload("release", "/releases", location)

    def _upload(self, kind: str, path: str, location: str) -> None:
        action = f"Upload {kind} {location}"
        logger.info("Uploading %s %s", kind, location)
        response = self._request("POST", path, json={"location": location})

        if response.status_code >= 400:
            payload = _error_payload(response)
            if payload.get("code") in _ALREADY_EXISTS_CODES or _mentions_already_exists(
                payload.get("description")
            ):
                logger.info("%s already present on the director", kind.capitalize())
                return
            raise self._error(response, action)

        task_id = self._task_id(response, action)
        task = self.wait_for_task(task_id, timeout=self.upload_timeout)
        state = task.get("state")
        if state == TASK_DONE:
            return
        if _mentions_already_exists(task.get("result")):
            logger.info("%s already present on the director (task %s)", kind.capitalize(), task_id)
            return
        raise DirectorError(
            f"{action}: task {task_id} finished in state {state}: {task.get('result', '')}"
        )

    # ========== Deployments ==========

    def deploy(self, manifest_path: Union[str, Path]) -> str:
        try:
            manifest = Path(manifest_path).read_bytes()
        except OSError as exc:
            raise DirectorError(f"Cannot read manifest {manifest_path}: {exc}") from exc
        response = self._request(
            "POST",
            "/deployments",
            data=manifest,
            headers={"Content-Type": "text/yaml"},
        )
        task_id = self._task_id(response, f"Deploy {manifest_path}")
        logger.info("Deployment task %s started for %s", task_id, manifest_path)
        return task_id

    def delete_deployment(self, deployment_name: str) -> str:
        response = self._request("DELETE", f"/deployments/{quote(deployment_name, safe='')}")
        task_id = self._task_id(response, f"Delete deployment {deployment_name}")
        logger.info("Delete task %s started for %s", task_id, deployment_name)
        return task_id

    # ========== Tasks ==========

    def task(self, task_id: str) -> Dict[str, Any]:
        if not task_id:
            raise DirectorError("No task id given")
        response = self._request("GET", f"/tasks/{quote(str(task_id), safe='')}")
        if response.status_code != 200:
            raise self._error(response, f"Task {task_id} lookup")
        data = self._json(response, f"task {task_id}")
        if not isinstance(data, dict) or not isinstance(data.get("state"), str):
            raise DirectorError(f"Malformed response for task {task_id}", response.status_code)
        return data

    def task_status(self, task_id: str) -> str:
        """Return the raw state string of a task."""
        return self.task(task_id)["state"]

    def wait_for_task(self, task_id: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Poll a task until it leaves the queued/processing states."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            task = self.task(task_id)
            if task["state"] not in ACTIVE_TASK_STATES:
                return task
            if deadline is not None and time.monotonic() >= deadline:
                raise DirectorError(f"Timed out after {timeout}s waiting for task {task_id}")
            self._sleep(self.poll_interval)

    # ========== HTTP helpers ==========

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout)
        kwargs.setdefault("allow_redirects", False)
        logger.debug("%s %s", method, url)
        try:
            return self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as exc:
            raise DirectorError(f"{method} {url} failed: {exc}") from exc

    def _json(self, response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DirectorError(f"Malformed {what} response: {exc}", response.status_code) from exc

    def _error(self, response: requests.Response, action: str) -> DirectorError:
        description = _error_payload(response).get("description") or response.reason or ""
        return DirectorError(
            f"{action} failed with HTTP {response.status_code}: {description}",
            response.status_code,
        )

    def _task_id(self, response: requests.Response, action: str) -> str:
        """Extract the task id from a redirect to /tasks/<id> or a JSON body."""
        if response.status_code in _REDIRECT_CODES:
            location = response.headers.get("Location", "")
            match = _TASK_LOCATION.search(location)
            if not match:
                raise DirectorError(
                    f"{action}: unexpected redirect to {location!r}", response.status_code
                )
            return match.group(1)
        if 200 <= response.status_code < 300:
            data = self._json(response, action)
            if isinstance(data, dict) and data.get("id") is not None:
                return str(data["id"])
            raise DirectorError(f"{action}: response carried no task id", response.status_code)
        raise self._error(response, action)
