"""ctxkit: Context window budgeting and session handoff for AI coding agents."""

__version__ = "0.1.0"
__author__ = "ctxkit Contributors"
__description__ = "Context window budgeting and session handoff for AI coding agents"

from .exceptions import CtxKitError, InvalidInputError, NotFoundError, StorageError
from .models import Bundle, BundleContext, BundleSummary, Classification, ThresholdStage
from .monitor import ThresholdMonitor, classify
from .store import BundleStore

__all__ = [
    "Bundle",
    "BundleContext",
    "BundleStore",
    "BundleSummary",
    "Classification",
    "CtxKitError",
    "InvalidInputError",
    "NotFoundError",
    "StorageError",
    "ThresholdMonitor",
    "ThresholdStage",
    "classify",
]
