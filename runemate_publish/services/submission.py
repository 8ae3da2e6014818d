"""Submission client - sends the packaged archive to the review endpoint."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

import aiohttp

from runemate_publish.constants import SUBMIT_TIMEOUT, SUBMIT_URL
from runemate_publish.errors import (
    SubmissionError,
    SubmissionOfflineError,
    SubmissionRejectedError,
)

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "The submission system is currently offline - please try again later."
UNKNOWN_REJECTION = "Unknown reason. Please contact the RuneMate team."


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of an accepted submission."""

    status: int
    body: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == 200


def interpret_response(status: int, body: str) -> SubmissionResult:
    """Map an HTTP status and body to a result or a SubmissionError.

    - 200: accepted
    - 404: the service is offline (retry later)
    - other: the JSON ``error`` field if present, a generic rejection if the
      body is JSON without one, "Invalid response" if it is not JSON
    """
    if status == 200:
        return SubmissionResult(status=status, body=body)
    if status == 404:
        raise SubmissionOfflineError(OFFLINE_MESSAGE)

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise SubmissionError(f"Invalid response: {status}") from e

    if isinstance(payload, dict) and "error" in payload:
        raise SubmissionRejectedError(str(payload["error"]))
    raise SubmissionRejectedError(UNKNOWN_REJECTION)


class SubmissionClient:
    """Posts a submission archive to the RuneMate review endpoint.

    Responsibilities:
    1. Build one authenticated POST whose body is the archive bytes
    2. Interpret the response (see ``interpret_response``)
    No retries: a failed submission is re-run by the invoker.
    """

    def __init__(self, endpoint: str = SUBMIT_URL, timeout: int = SUBMIT_TIMEOUT):
        """Initialize the client.

        Args:
            endpoint: Review endpoint URL
            timeout: Total request timeout in seconds
        """
        self.endpoint = endpoint
        self.timeout = timeout

    def submit(self, archive_path: Path, credential: str) -> SubmissionResult:
        """Blocking submit, for callers outside an event loop."""
        return asyncio.run(self.submit_async(archive_path, credential))

    async def submit_async(self, archive_path: Path, credential: str) -> SubmissionResult:
        """Submit ``archive_path`` using ``credential``.

        Raises:
            SubmissionError: unreadable archive, network failure or rejection
            SubmissionOfflineError: the service answered 404
        """
        try:
            body = Path(archive_path).read_bytes()
        except OSError as e:
            raise SubmissionError(f"Cannot read submission archive {archive_path}: {e}") from e

        headers = {"Authentication": f"Private-Token {credential}"}
        logger.info(f"[Submission] Posting {len(body)} bytes to {self.endpoint}")

        status, text = await self._post(body, headers)
        logger.debug(f"[Submission] HTTP {status}: {text[:200]}")
        return interpret_response(status, text)

    async def _post(self, body: bytes, headers: Dict[str, str]) -> Tuple[int, str]:
        """Send the request.

        Returns:
            (status code, response text)
        """
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint, data=body, headers=headers) as response:
                    return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[Submission] Request error: {e}", exc_info=True)
            raise SubmissionError(f"Submission request to {self.endpoint} failed: {e}") from e
