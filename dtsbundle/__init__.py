"""Bundle per-module TypeScript declaration output into one declaration file."""

from .bundler import EmitterError, generate
from .config import BundleOptions, ConfigError

__all__ = ["BundleOptions", "ConfigError", "EmitterError", "generate"]
