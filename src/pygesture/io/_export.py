import os
import json
import time
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np

from pygesture.logging import get_logger

log = get_logger("io.export")


def _jsonify(obj):
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.floating, np.integer)):
        return obj.item()
    if isinstance(obj, dict):
        return {str(k): _jsonify(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonify(v) for v in obj]
    return obj


def export_training_stats(stats: Any, path: Optional[str] = None, directory: str = ".") -> str:
    """
    Write the current training statistics and a timestamp as a JSON document.

    The file is informational only; nothing in the pipeline reads it back.

    Parameters:
        stats: A ``TrainingStats`` (anything with ``to_dict()``) or a plain mapping.
        path (str): Output file. Defaults to ``gesture-training-data-<epoch ms>.json``
            inside ``directory``.

    Returns:
        str: The path written.
    """
    payload = stats.to_dict() if hasattr(stats, "to_dict") else dict(stats)
    if path is None:
        path = os.path.join(directory, f"gesture-training-data-{int(time.time() * 1000)}.json")

    document = {
        "stats": _jsonify(payload),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    log.info(f"Training stats exported to {path}")
    return path
