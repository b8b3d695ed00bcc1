from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class FallbackLog:
    """Append-only text file for payloads the remote store did not accept."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def append_payload(self, payload: str) -> bool:
        return self._append(_terminated(payload))

    def append_error(self, detail: str, payload: Optional[str] = None) -> bool:
        text = f"Error={detail}\n"
        if payload:
            text += _terminated(payload)
        return self._append(text)

    def _append(self, text: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8", newline="") as handle:
                handle.write(text)
        except OSError as exc:
            logger.warning(
                "Failed to write fallback file",
                extra={"file_path": str(self.path), "reason": str(exc)},
            )
            return False
        return True


def _terminated(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"
