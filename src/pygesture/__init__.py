"""
pygesture: gesture decisions for a flex-sensor and IMU data glove.

This package includes modules for:
- The on-device rule-based detector with hysteresis, debouncing and rate limiting
- The text wire protocol and a ZMQ link between glove and host
- Feature normalization, labeled-sample recording and a trainable classifier
- Confidence-based arbitration between the device label and the model
"""

__version__ = "0.1.0"
__license__ = "MIT"
__description__ = "Rule-based and trainable gesture recognition for a sensor glove"

import importlib as _importlib

submodules = [
    'applications',
    'interface',
    'io',
    'ml',
    'processing',
]

__all__ = submodules + [
    '__version__',
]


def __dir__():
    return __all__


def __getattr__(name):
    if name in submodules:
        return _importlib.import_module(f'pygesture.{name}')
    else:
        try:
            return globals()[name]
        except KeyError:
            raise AttributeError(
                f"Module 'pygesture' has no attribute '{name}'"
            )
