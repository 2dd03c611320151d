from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator

logger = logging.getLogger(__name__)


def read_events(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield raw reporting events from a JSON-lines capture."""
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning(
                    "event_line_invalid",
                    extra={"path": str(path), "line": line_no, "error": str(exc)},
                )
                continue
            yield event
