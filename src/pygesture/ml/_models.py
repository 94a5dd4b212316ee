# pygesture.ml._models.py

import torch
import torch.nn as nn

from pygesture.processing import NUM_CLASSES, NUM_FEATURES


class GestureNet(nn.Module):
    """
    Dense classifier over one normalized sensor frame.

    8 -> Linear(64) -> ReLU -> Dropout -> Linear(32) -> ReLU -> Dropout -> Linear(9).
    ``forward`` returns logits; :meth:`predict_proba` applies the softmax.

    Args:
        input_dim: Number of features per frame
        output_dim: Number of gesture classes
        hidden: Units of each hidden layer
        dropout: Dropout rate after each hidden layer
    """
    def __init__(self, input_dim=NUM_FEATURES, output_dim=NUM_CLASSES, hidden=(64, 32), dropout=0.2):
        super(GestureNet, self).__init__()
        self.input_dim = int(input_dim)
        self.output_dim = int(output_dim)
        self.hidden = tuple(int(h) for h in hidden)
        self.dropout = float(dropout)

        layers = []
        prev = self.input_dim
        for units in self.hidden:
            layers += [nn.Linear(prev, units), nn.ReLU(), nn.Dropout(p=self.dropout)]
            prev = units
        layers.append(nn.Linear(prev, self.output_dim))
        self.model = nn.Sequential(*layers)

    def forward(self, x):
        return self.model(x)

    def predict_proba(self, x):
        """Softmax class probabilities in eval mode."""
        self.eval()
        with torch.no_grad():
            return torch.softmax(self(x), dim=1)

    def describe(self):
        """Architecture descriptor stored alongside the weights."""
        return {
            "input_dim": self.input_dim,
            "output_dim": self.output_dim,
            "hidden": list(self.hidden),
            "activation": "relu",
            "dropout": self.dropout,
            "output_activation": "softmax",
        }

    @classmethod
    def from_descriptor(cls, descriptor):
        return cls(
            input_dim=descriptor.get("input_dim", NUM_FEATURES),
            output_dim=descriptor.get("output_dim", NUM_CLASSES),
            hidden=descriptor.get("hidden", (64, 32)),
            dropout=descriptor.get("dropout", 0.2),
        )
