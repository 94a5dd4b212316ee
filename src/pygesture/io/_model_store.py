"""
Durable storage for the single live gesture model.

A record is a named slot under ``<root_dir>/model``::

    gesture-model.pth   torch state dict
    gesture-model.json  architecture descriptor + normalization contract

Writes go to temporary files first and are moved into place, so a crash
mid-save never leaves a half-written record under the slot name.
"""
from __future__ import annotations

import os
import json
import pickle
import time
import platform
from typing import Any, Dict, Optional

import torch

from pygesture.errors import ModelLoadError, ModelSaveError
from pygesture.logging import get_logger
from pygesture.processing import normalization_contract

log = get_logger("io.model_store")

DEFAULT_SLOT = "gesture-model"
SCHEMA_VERSION = "1.0.0"


class ModelStore:
    """
    Persist and restore a model under a fixed slot name.

    Parameters
    ----------
    root_dir : str
        Directory that holds the ``model/`` folder.
    slot : str
        Record name; one record per slot.
    """

    def __init__(self, root_dir: str, slot: str = DEFAULT_SLOT):
        self.root_dir = str(root_dir)
        self.slot = slot
        self.model_dir = os.path.join(self.root_dir, "model")
        self.model_path = os.path.join(self.model_dir, f"{slot}.pth")
        self.metadata_path = os.path.join(self.model_dir, f"{slot}.json")

    def exists(self) -> bool:
        return os.path.isfile(self.model_path) and os.path.isfile(self.metadata_path)

    def build_metadata(self, model: torch.nn.Module, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        meta = {
            "schema_version": SCHEMA_VERSION,
            "created_by": "pygesture.io.ModelStore",
            "saved_at": time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime()),
            "system": {"platform": platform.platform()},
            "model": {"class": type(model).__name__},
            "architecture": model.describe() if hasattr(model, "describe") else {},
            "normalization": normalization_contract(),
        }
        if extra:
            meta["extra"] = extra
        return meta

    def save(self, model: torch.nn.Module, extra: Optional[Dict[str, Any]] = None) -> None:
        """Write the record. Raises ModelSaveError on any filesystem or serialisation failure."""
        meta = self.build_metadata(model, extra)
        tmp_model = self.model_path + ".tmp"
        tmp_meta = self.metadata_path + ".tmp"
        try:
            os.makedirs(self.model_dir, exist_ok=True)
            torch.save(model.state_dict(), tmp_model)
            with open(tmp_meta, "w", encoding="utf-8") as f:
                json.dump(meta, f, indent=2)
            os.replace(tmp_model, self.model_path)
            os.replace(tmp_meta, self.metadata_path)
        except (OSError, RuntimeError, TypeError, ValueError) as e:
            for tmp in (tmp_model, tmp_meta):
                if os.path.exists(tmp):
                    os.remove(tmp)
            raise ModelSaveError(f"Could not save model to {self.model_path}: {e}") from e
        log.info(f"Model saved to {self.model_path}")

    def load_metadata(self) -> Dict[str, Any]:
        if not os.path.isfile(self.metadata_path):
            raise ModelLoadError(f"No saved model metadata at {self.metadata_path}")
        try:
            with open(self.metadata_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise ModelLoadError(f"Unreadable model metadata at {self.metadata_path}: {e}") from e

    def load(self, model_cls) -> torch.nn.Module:
        """
        Rebuild the model with ``model_cls.from_descriptor`` and load its weights.

        Raises
        ------
        ModelLoadError
            When the record is absent, unreadable, or was trained under a
            different normalization contract.
        """
        meta = self.load_metadata()
        if meta.get("normalization") != normalization_contract():
            raise ModelLoadError(
                f"Saved model at {self.model_path} uses normalization {meta.get('normalization')}, "
                f"expected {normalization_contract()}"
            )
        if not os.path.isfile(self.model_path):
            raise ModelLoadError(f"No saved model weights at {self.model_path}")
        try:
            model = model_cls.from_descriptor(meta.get("architecture", {}))
            state = torch.load(self.model_path, map_location="cpu", weights_only=True)
            model.load_state_dict(state)
        except (OSError, RuntimeError, EOFError, pickle.UnpicklingError, KeyError, TypeError, ValueError) as e:
            raise ModelLoadError(f"Corrupt model record at {self.model_path}: {e}") from e
        model.eval()
        log.info(f"Loaded model weights from {self.model_path}")
        return model

    def delete(self) -> bool:
        """Remove the record. Returns True if anything was deleted."""
        removed = False
        for path in (self.model_path, self.metadata_path):
            if os.path.exists(path):
                os.remove(path)
                removed = True
        if removed:
            log.info(f"Deleted saved model '{self.slot}' from {self.model_dir}")
        return removed

    def __repr__(self) -> str:
        return f"ModelStore(slot={self.slot!r}, model_dir={self.model_dir!r})"
