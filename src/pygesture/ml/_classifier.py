# pygesture.ml._classifier.py
import os
import copy
import random
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import torch
from sklearn.model_selection import train_test_split

from pygesture.errors import (
    InsufficientDataError,
    ModelLoadError,
    ModelSaveError,
    TrainingInProgressError,
)
from pygesture.io import ModelStore, DEFAULT_SLOT
from pygesture.logging import get_logger
from pygesture.processing import GestureLabel, SensorFrame, NUM_CLASSES, NUM_FEATURES, normalize_frame
from ._models import GestureNet
from ._sample_store import TrainingSampleStore, TrainingStats

log = get_logger("ml.classifier")

DEFAULT_ROOT_DIR = os.path.join(os.path.expanduser("~"), ".pygesture")


@dataclass
class TrainingConfig:
    epochs: int = 50
    batch_size: int = 32
    validation_split: float = 0.2
    min_samples: int = 10
    learning_rate: float = 1e-3
    seed: Optional[int] = 42

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "TrainingConfig":
        values = values or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass(frozen=True)
class EpochProgress:
    """Metrics reported after each epoch. Validation metrics are None when no
    validation split was held out."""
    epoch: int
    epochs: int
    loss: float
    accuracy: float
    val_loss: Optional[float] = None
    val_accuracy: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        def fmt(v):
            return "N/A" if v is None else f"{v:.4f}"
        return (f"Epoch {self.epoch}/{self.epochs} | loss={fmt(self.loss)} acc={fmt(self.accuracy)} | "
                f"val_loss={fmt(self.val_loss)} val_acc={fmt(self.val_accuracy)}")


@dataclass
class TrainingHistory:
    n_train: int
    n_val: int
    epochs: List[EpochProgress] = field(default_factory=list)

    @property
    def final(self) -> Optional[EpochProgress]:
        return self.epochs[-1] if self.epochs else None


@dataclass(frozen=True)
class Prediction:
    label: GestureLabel
    confidence: float
    distribution: Tuple[float, ...]


EpochCallback = Callable[[EpochProgress], None]


class GestureClassifier:
    """
    Owns the single live gesture model and the samples it is trained on.

    Lifecycle: construct -> optionally :meth:`load` -> :meth:`train` /
    :meth:`predict` any number of times -> optionally :meth:`save` /
    :meth:`reset`. The instance is meant to be shared by reference with
    whatever composes the pipeline.

    Training fits a copy of the live model. Predictions keep using the previous
    model until the new one is swapped in when training completes, so a host
    can keep arbitrating frames while a model trains. Only one training run may
    be in flight; a second request raises :class:`TrainingInProgressError`.

    Parameters
    ----------
    root_dir : str, optional
        Where the model record lives (``<root_dir>/model``). Defaults to
        ``~/.pygesture``. Ignored when ``store`` is given.
    samples : TrainingSampleStore, optional
        Sample store to train on; a new empty one by default.
    config : TrainingConfig or dict, optional
        Training hyperparameters.

    Examples
    --------
    >>> clf = GestureClassifier(root_dir="data")
    >>> clf.initialize()
    >>> clf.samples.add(frame, GestureLabel.FIST)
    >>> clf.train(on_epoch=print)
    >>> clf.predict(frame).label
    """

    def __init__(self, root_dir: Optional[str] = None, samples: Optional[TrainingSampleStore] = None,
                 config=None, store: Optional[ModelStore] = None, model_cls=GestureNet,
                 slot: str = DEFAULT_SLOT):
        if isinstance(config, dict):
            config = TrainingConfig.from_dict(config)
        self.config = config or TrainingConfig()
        self.model_cls = model_cls
        self.samples = samples if samples is not None else TrainingSampleStore()
        self.store = store or ModelStore(root_dir or DEFAULT_ROOT_DIR, slot=slot)

        # Seed for reproducibility
        if self.config.seed is not None:
            random.seed(self.config.seed)
            np.random.seed(self.config.seed)
            torch.manual_seed(self.config.seed)

        self._model: Optional[torch.nn.Module] = None
        self._model_lock = threading.RLock()
        self._train_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Model lifecycle
    # ------------------------------------------------------------------

    @property
    def model(self) -> Optional[torch.nn.Module]:
        with self._model_lock:
            return self._model

    @property
    def is_training(self) -> bool:
        return self._train_lock.locked()

    def build_model(self) -> torch.nn.Module:
        return self.model_cls(input_dim=NUM_FEATURES, output_dim=NUM_CLASSES)

    def initialize(self) -> bool:
        """
        Load the persisted model, or construct a fresh untrained one.

        Returns True when a persisted model was loaded.
        """
        with self._model_lock:
            if self.load():
                return True
            self._model = self.build_model()
            self._model.eval()
            log.info("Initialized a new untrained gesture model")
            return False

    def load(self) -> bool:
        """Restore the persisted model. A missing or corrupt record returns False."""
        try:
            model = self.store.load(self.model_cls)
            if model.input_dim != NUM_FEATURES or model.output_dim != NUM_CLASSES:
                raise ModelLoadError(
                    f"Saved model maps {model.input_dim} -> {model.output_dim}, "
                    f"expected {NUM_FEATURES} -> {NUM_CLASSES}"
                )
        except ModelLoadError as e:
            log.info(f"No saved model found, will create new one ({e})")
            return False
        with self._model_lock:
            self._model = model
        return True

    def save(self) -> bool:
        """Persist the live model. Failures are logged and reported as False."""
        model = self.model
        if model is None:
            log.warning("No model to save")
            return False
        try:
            self.store.save(model, extra={"training": asdict(self.config)})
        except ModelSaveError as e:
            log.error(f"Error saving model: {e}")
            return False
        return True

    def reset(self) -> None:
        """Discard the in-memory model and all samples, and delete the saved record."""
        if self.is_training:
            raise TrainingInProgressError("Cannot reset while a model is training.")
        with self._model_lock:
            self._model = None
        self.samples.clear()
        try:
            self.store.delete()
        except OSError as e:
            log.error(f"Error clearing saved model: {e}")

    def _ensure_model(self) -> torch.nn.Module:
        with self._model_lock:
            if self._model is None:
                self.initialize()
            return self._model

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    def add_sample(self, frame: SensorFrame, label) -> None:
        self.samples.add(frame, label)

    def stats(self) -> TrainingStats:
        return self.samples.stats()

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, frame: SensorFrame) -> Prediction:
        """Classify one raw frame. An untrained model still answers."""
        model = self._ensure_model()
        x = torch.from_numpy(normalize_frame(frame)).unsqueeze(0)
        probs = model.predict_proba(x)[0].numpy().astype(np.float64)
        idx = int(np.argmax(probs))
        return Prediction(
            label=GestureLabel(idx),
            confidence=float(probs[idx]),
            distribution=tuple(float(p) for p in probs),
        )

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def _acquire_training(self) -> None:
        if not self._train_lock.acquire(blocking=False):
            raise TrainingInProgressError("A training run is already in progress.")

    def train(self, on_epoch: Optional[EpochCallback] = None) -> TrainingHistory:
        """
        Fit the model on a snapshot of the recorded samples, swap it in and save it.

        Raises
        ------
        InsufficientDataError
            Fewer than ``config.min_samples`` samples are recorded.
        TrainingInProgressError
            Another training run has not finished.
        """
        self._acquire_training()
        try:
            return self._train_locked(on_epoch)
        finally:
            self._train_lock.release()

    def train_async(self, on_epoch: Optional[EpochCallback] = None) -> Future:
        """Run :meth:`train` on a background worker and return its Future.

        The in-progress check happens here, so a rejected request raises
        immediately instead of through the Future.
        """
        self._acquire_training()
        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gesture-train")
            return self._executor.submit(self._train_then_release, on_epoch)
        except BaseException:
            self._train_lock.release()
            raise

    def _train_then_release(self, on_epoch: Optional[EpochCallback]) -> TrainingHistory:
        try:
            return self._train_locked(on_epoch)
        finally:
            self._train_lock.release()

    def _train_locked(self, on_epoch: Optional[EpochCallback]) -> TrainingHistory:
        X, y = self.samples.snapshot()
        if len(y) < self.config.min_samples:
            raise InsufficientDataError(len(y), self.config.min_samples)

        candidate = copy.deepcopy(self._ensure_model())
        log.info(f"Training on {len(y)} samples for {self.config.epochs} epochs")
        history = self._fit(candidate, X, y, on_epoch)
        candidate.eval()

        with self._model_lock:
            self._model = candidate
        final = history.final
        if final is not None:
            log.info(f"Training complete. {final}")
        self.save()
        return history

    def _split(self, X: np.ndarray, y: np.ndarray):
        split = float(self.config.validation_split)
        n_val = int(np.ceil(len(y) * split)) if split > 0 else 0
        if n_val < 1 or n_val >= len(y):
            return X, None, y, None
        return train_test_split(X, y, test_size=n_val, shuffle=True, random_state=self.config.seed)

    def _fit(self, model: torch.nn.Module, X: np.ndarray, y: np.ndarray,
             on_epoch: Optional[EpochCallback]) -> TrainingHistory:
        cfg = self.config
        X_train, X_val, y_train, y_val = self._split(X, y)

        dataset = torch.utils.data.TensorDataset(
            torch.tensor(X_train, dtype=torch.float32),
            torch.tensor(y_train, dtype=torch.long),
        )
        loader = torch.utils.data.DataLoader(dataset, batch_size=cfg.batch_size, shuffle=True)
        X_val_t = torch.tensor(X_val, dtype=torch.float32) if X_val is not None else None
        y_val_t = torch.tensor(y_val, dtype=torch.long) if y_val is not None else None

        optimizer = torch.optim.Adam(model.parameters(), lr=cfg.learning_rate)
        criterion = torch.nn.CrossEntropyLoss()
        history = TrainingHistory(n_train=len(y_train), n_val=0 if y_val is None else len(y_val))

        for epoch in range(cfg.epochs):
            model.train()
            total_loss, correct, seen = 0.0, 0, 0
            for batch_X, batch_y in loader:
                optimizer.zero_grad()
                outputs = model(batch_X)
                loss = criterion(outputs, batch_y)
                loss.backward()
                optimizer.step()
                total_loss += loss.item() * batch_y.shape[0]
                correct += int((outputs.argmax(dim=1) == batch_y).sum().item())
                seen += int(batch_y.shape[0])

            val_loss = val_acc = None
            if X_val_t is not None:
                model.eval()
                with torch.no_grad():
                    val_out = model(X_val_t)
                    val_loss = float(criterion(val_out, y_val_t).item())
                    val_acc = float((val_out.argmax(dim=1) == y_val_t).float().mean().item())

            progress = EpochProgress(
                epoch=epoch + 1,
                epochs=cfg.epochs,
                loss=total_loss / seen,
                accuracy=correct / seen,
                val_loss=val_loss,
                val_accuracy=val_acc,
            )
            history.epochs.append(progress)
            if log.isEnabledFor(logging.DEBUG):
                log.debug(str(progress))
            if on_epoch:
                on_epoch(progress)

        return history

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __repr__(self) -> str:
        state = "untrained" if self._model is None else type(self._model).__name__
        return f"GestureClassifier(model={state}, samples={len(self.samples)}, store={self.store!r})"
