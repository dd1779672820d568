"""Daily JSON-lines compliance log of every call outcome."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from app.schemas.call import CaseSummary

logger = logging.getLogger(__name__)


class CaseLog:
    def __init__(self, log_dir: str | Path):
        self._dir = Path(log_dir)

    def path_for(self, moment: datetime) -> Path:
        return self._dir / f"receptionist-{moment:%Y-%m-%d}.log"

    async def write(self, event: str, call_id: str, **details) -> None:
        now = datetime.now(timezone.utc)
        entry = {"timestamp": now.isoformat(), "event": event, "call_id": call_id, **details}
        line = json.dumps(entry, default=str) + "\n"
        path = self.path_for(now)

        def _append() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(line)

        try:
            await asyncio.to_thread(_append)
        except OSError:
            logger.exception("Failed to write case log entry %s for call %s", event, call_id)

    async def record_case(self, case: CaseSummary) -> None:
        await self.write("case", case.call_id, case=case.model_dump(mode="json"))
