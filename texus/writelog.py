"""Log records posted to a fluent-bit HTTP input."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

import requests

logger = logging.getLogger(__name__)


@dataclass
class WriteLog:
    """A JSON log body with the fluent-bit tag it is posted under."""

    content: bytes
    tag: str
    id: str = ""

    def url(self, host: str) -> str:
        return f"http://{host}/{self.tag}"

    def process(self, environ: Mapping[str, str] | None = None) -> requests.Response | None:
        """Post the content to the host in TEXUS_FluentBitUrl; None if the request failed."""
        environ = os.environ if environ is None else environ
        full_url = self.url(environ.get("TEXUS_FluentBitUrl", ""))
        try:
            response = requests.post(
                full_url,
                data=self.content,
                headers={"Content-Type": "application/json"},
                timeout=10,
            )
        except requests.RequestException as exc:
            logger.error("write log to %s failed: %s", full_url, exc)
            return None
        logger.info("requested %s, response: %s", full_url, response)
        return response