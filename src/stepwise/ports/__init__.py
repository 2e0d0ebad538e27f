from .driver import ActionHook, BrowserFactory, BrowserSession, DriverClient, DriverRuntime
from .interceptor import InterceptorFactory, RequestInterceptor
from .log_sink import LogSink
from .report_sink import ReportSink
from .data_source import DataSource

# Ports describe the collaborators the engine consumes; implementations live elsewhere.
__all__ = [
    "ActionHook",
    "BrowserFactory",
    "BrowserSession",
    "DataSource",
    "DriverClient",
    "DriverRuntime",
    "InterceptorFactory",
    "LogSink",
    "ReportSink",
    "RequestInterceptor",
]
