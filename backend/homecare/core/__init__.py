# Core package initialization
# Configuration, logging, validation and error types shared by all layers

from . import config, exceptions

__all__ = [
    "config",
    "exceptions",
]
