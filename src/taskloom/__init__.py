"""
Taskloom - Unified AI invocation layer

Role-based access to multiple AI providers with retries, role fallback,
error classification and usage telemetry.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("taskloom")
except PackageNotFoundError:
    __version__ = "0.4.0"

__all__ = [
    "__version__",
]
