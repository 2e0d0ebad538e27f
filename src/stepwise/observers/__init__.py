from .chain import ObserverChain
from .failure import ScreenshotOnFailureObserver
from .logging import LoggingObserver
from .observer import NullRunObserver, RunObserver
from .report import StepReportObserver

__all__ = [
    "LoggingObserver",
    "NullRunObserver",
    "ObserverChain",
    "RunObserver",
    "ScreenshotOnFailureObserver",
    "StepReportObserver",
]
