"""Apify task-runner adapter implementing :class:`ITaskRunner`.

Runs an Apify actor through the REST API v2 and returns its dataset:

    POST /v2/acts/{actor}/runs?waitForFinish=N     start (waits up to N s)
    GET  /v2/actor-runs/{run_id}?waitForFinish=N   poll until terminal
    GET  /v2/datasets/{dataset_id}/items?clean=1   output records

Actor ids use ``owner/name`` form; the API path wants ``owner~name``.
HTTP failures are raised as :class:`TaskExecutionError` carrying the
status code and the platform's error type (``actor-memory-limit-exceeded``
and friends) so the resilient client can classify them.  Retrying is the
client's job, not this adapter's.
"""

from __future__ import annotations

from typing import Any

import httpx

from src.config.settings import Settings
from src.interfaces.task_runner import ITaskRunner, TaskRun
from src.utils.errors import TaskExecutionError
from src.utils.logging import get_logger

_TERMINAL_STATUSES = frozenset({"SUCCEEDED", "FAILED", "TIMED-OUT", "ABORTED"})
_DEFAULT_WAIT_SECONDS = 60


class ApifyTaskRunner(ITaskRunner):
    """Apify actor runner.

    Parameters
    ----------
    settings:
        Supplies ``apify_api_token`` and ``apify_base_url``.
    http_client:
        Injected ``httpx.AsyncClient`` for testability and connection pooling.
    wait_for_finish_seconds:
        Server-side wait per request; the platform caps it at 60.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        wait_for_finish_seconds: int = _DEFAULT_WAIT_SECONDS,
    ) -> None:
        self._token = settings.apify_api_token
        self._base_url = settings.apify_base_url.rstrip("/")
        self._http = http_client
        self._wait = wait_for_finish_seconds
        self._logger = get_logger(__name__)

    async def run_task(self, task_id: str, task_input: dict[str, Any]) -> TaskRun:
        actor_path = task_id.replace("/", "~")
        run = await self._request(
            "POST",
            f"/v2/acts/{actor_path}/runs",
            params={"waitForFinish": self._wait},
            json=task_input,
        )
        run_data = run.get("data") or {}
        run_id = run_data.get("id")
        status = run_data.get("status", "")

        self._logger.debug("apify_run_started", task_id=task_id, run_id=run_id, status=status)

        while status not in _TERMINAL_STATUSES:
            if not run_id:
                raise TaskExecutionError(
                    message="Apify response did not include a run id",
                    provider_name=self.get_provider_name(),
                )
            polled = await self._request(
                "GET",
                f"/v2/actor-runs/{run_id}",
                params={"waitForFinish": self._wait},
            )
            run_data = polled.get("data") or {}
            status = run_data.get("status", "")

        if status != "SUCCEEDED":
            self._logger.info("apify_run_unsuccessful", task_id=task_id, run_id=run_id, status=status)
            return TaskRun(status=status)

        dataset_id = run_data.get("defaultDatasetId")
        records: list[dict[str, Any]] = []
        if dataset_id:
            items = await self._request(
                "GET",
                f"/v2/datasets/{dataset_id}/items",
                params={"clean": "true", "format": "json"},
            )
            if isinstance(items, list):
                records = [item for item in items if isinstance(item, dict)]

        self._logger.debug("apify_run_succeeded", task_id=task_id, run_id=run_id, records=len(records))
        return TaskRun(status=status, output_records=records)

    def get_provider_name(self) -> str:
        return "apify"

    def is_available(self) -> bool:
        return bool(self._token)

    # -- Private helpers -------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            response = await self._http.request(method, f"{self._base_url}{path}", headers=headers, **kwargs)
        except httpx.TimeoutException:
            # Classified as TIMEOUT by the resilient client.
            raise
        except httpx.HTTPError as exc:
            raise TaskExecutionError(
                message=f"Apify request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code >= 400:
            raise TaskExecutionError(
                message=_error_message(response),
                provider_name=self.get_provider_name(),
                status_code=response.status_code,
            )
        return response.json()


def _error_message(response: httpx.Response) -> str:
    """``"<type>: <message>"`` from an Apify error body, or the raw status."""
    try:
        error = (response.json() or {}).get("error") or {}
    except ValueError:
        error = {}
    if not isinstance(error, dict):
        error = {}
    error_type = error.get("type")
    message = error.get("message") or f"HTTP {response.status_code}"
    return f"{error_type}: {message}" if error_type else message
