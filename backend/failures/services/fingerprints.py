from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, Union

from failures.events import FailureEvent, as_event

SHORT_LENGTH = 16

# Applied in order; each match is replaced by a fixed placeholder.
_NORMALIZERS = (
    (re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE), "{uuid}"),
    (re.compile(r"\b\d{5,}\b", re.IGNORECASE), "{id}"),
    (re.compile(r"\d{4}-\d{2}-\d{2}[T\s]\d{2}:\d{2}:\d{2}", re.IGNORECASE), "{timestamp}"),
    (re.compile(r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}", re.IGNORECASE), "{email}"),
    (re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}", re.IGNORECASE), "{ip}"),
)


def normalize_message(message: str) -> str:
    """Replace instance-specific values (ids, uuids, timestamps, emails, IPs) with placeholders."""
    for pattern, placeholder in _NORMALIZERS:
        message = pattern.sub(placeholder, message)
    return message


class FingerprintGenerator:
    """
    Stable grouping key for a failure: SHA-256 over kind, normalized message,
    file and line. The full hex digest is the key; ``generate_short`` is for
    display only.
    """

    delimiter = "|"

    def components(self, event: FailureEvent) -> list[str]:
        return [
            event.kind,
            normalize_message(event.message),
            event.file,
            str(event.line),
        ]

    def generate(self, failure: Union[BaseException, FailureEvent]) -> str:
        event = as_event(failure)
        joined = self.delimiter.join(self.components(event))
        return hashlib.sha256(joined.encode("utf-8", errors="surrogatepass")).hexdigest()

    def generate_short(self, failure: Union[BaseException, FailureEvent]) -> str:
        return self.generate(failure)[:SHORT_LENGTH]

    def fingerprint_data(self, failure: Union[BaseException, FailureEvent]) -> Dict[str, Any]:
        event = as_event(failure)
        fingerprint = self.generate(event)
        return {
            "fingerprint": fingerprint,
            "short": fingerprint[:SHORT_LENGTH],
            "class": event.kind,
            "message": event.message,
            "file": event.file,
            "line": event.line,
        }
