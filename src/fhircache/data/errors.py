"""
Normalization of remote failures into ResourceFetchError.

Whatever goes wrong on the wire, callers see a ResourceFetchError with the
message and code the remote reported, falling back to 500 when it reported
none.
"""

from __future__ import annotations

from typing import Any

import httpx
import orjson

from fhircache.exceptions import DEFAULT_ERROR_CODE, ResourceFetchError

MAX_MESSAGE_CHARS = 500


def _operation_outcome_message(body: dict[str, Any]) -> str | None:
    issues = body.get("issue")
    if not isinstance(issues, list) or not issues or not isinstance(issues[0], dict):
        return None
    issue = issues[0]
    if issue.get("diagnostics"):
        return str(issue["diagnostics"])
    details = issue.get("details")
    if isinstance(details, dict) and details.get("text"):
        return str(details["text"])
    return None


def remote_message(response: httpx.Response) -> str:
    """Extract the error message a FHIR server put in its response.

    Checks, in order: a JSON ``message`` field, an OperationOutcome's first
    issue, the raw body text, and the HTTP reason phrase.
    """
    text = response.text.strip()
    if text:
        try:
            body = orjson.loads(text)
        except orjson.JSONDecodeError:
            return text[:MAX_MESSAGE_CHARS]

        if isinstance(body, dict):
            if isinstance(body.get("message"), str) and body["message"]:
                return body["message"]
            if body.get("resourceType") == "OperationOutcome":
                outcome = _operation_outcome_message(body)
                if outcome:
                    return outcome

        return text[:MAX_MESSAGE_CHARS]

    return response.reason_phrase or f"HTTP {response.status_code}"


def _exception_code(exc: BaseException) -> int:
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return DEFAULT_ERROR_CODE


def normalize_error(exc: Exception, url: str | None = None) -> ResourceFetchError:
    """Convert a failed request into a ResourceFetchError.

    Args:
        exc: The exception raised while performing the request.
        url: The URL being fetched, kept in the error context.

    Returns:
        ResourceFetchError carrying the remote message and code.
    """
    if isinstance(exc, ResourceFetchError):
        return exc

    context = {"url": url} if url else {}

    if isinstance(exc, httpx.HTTPStatusError):
        return ResourceFetchError(
            remote_message(exc.response),
            exc.response.status_code,
            context=context,
        )

    message = str(exc) or type(exc).__name__
    return ResourceFetchError(message, _exception_code(exc), context=context)
