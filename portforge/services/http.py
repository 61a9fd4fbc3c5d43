"""Shared helpers for provider HTTP APIs."""
from typing import Optional

import requests


class ProviderError(Exception):
    """A remote provider rejected a request.

    The provider's own message is kept verbatim in ``message``.
    """

    provider = "provider"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        prefix = f"{self.provider} error"
        if status_code is not None:
            prefix += f" ({status_code})"
        super().__init__(f"{prefix}: {message}")


def error_message(response: requests.Response) -> str:
    """Extract the provider's error text from a failed response.

    Understands the ``message``/``errors[].message`` shape used by GitHub,
    Vercel's ``error.message`` and Supabase's ``message``/``error``; falls
    back to the raw body.
    """
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason or "no response body"

    if not isinstance(data, dict):
        return response.text.strip()

    parts = []
    error = data.get("error")
    if isinstance(error, dict):
        if error.get("message"):
            parts.append(str(error["message"]))
    elif error:
        parts.append(str(error))

    if data.get("message"):
        parts.append(str(data["message"]))

    for item in data.get("errors") or []:
        if isinstance(item, dict) and item.get("message"):
            parts.append(str(item["message"]))
        elif isinstance(item, str):
            parts.append(item)

    return " - ".join(parts) if parts else response.text.strip()
