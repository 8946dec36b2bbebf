"""One-shot fetch that persists the latest observation as JSON."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from yield_overlay.acquisition import AcquisitionPipeline
from yield_overlay.models import Observation

_LOGGER = logging.getLogger("YieldOverlay.Snapshot")

DEFAULT_SNAPSHOT_PATH = Path("data") / "yield.json"


def snapshot_payload(observation: Observation, *, updated_at: Optional[datetime] = None) -> Dict[str, Any]:
    moment = updated_at or datetime.now(timezone.utc)
    return {
        "yieldValue": observation.value,
        "dayChangeValue": observation.change,
        "tooltip": observation.label,
        "updatedAt": moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def write_snapshot(observation: Observation, path: Path, *, updated_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Atomically replace *path* with the observation payload."""

    payload = snapshot_payload(observation, updated_at=updated_at)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(target.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    tmp_path.replace(target)
    return payload


async def run_batch(pipeline: AcquisitionPipeline, path: Path) -> int:
    """Fetch once and persist; returns a process exit code."""

    try:
        observation = await pipeline.fetch_observation()
    finally:
        pipeline.close()
    if observation is None:
        for attempt in pipeline.last_attempts:
            _LOGGER.error(
                "Route %s -> %s (%.2fs)",
                attempt.route,
                attempt.error or f"HTTP {attempt.status}",
                attempt.elapsed,
            )
        _LOGGER.error("Snapshot not written: %s", pipeline.last_error or "no observation")
        return 1
    try:
        payload = write_snapshot(observation, path)
    except OSError as exc:
        _LOGGER.error("Failed to write snapshot %s: %s", path, exc)
        return 1
    _LOGGER.info("Wrote yield snapshot to %s: %s", path, payload)
    return 0
