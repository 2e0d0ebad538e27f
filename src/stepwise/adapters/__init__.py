from .data_sources import InMemoryDataSource
from .log_sinks import FanoutLogSink, JsonlLogSink, StdoutLogSink
from .report_sinks import JsonlReportSink, StdoutReportSink, record_to_dict

__all__ = [
    "FanoutLogSink",
    "InMemoryDataSource",
    "JsonlLogSink",
    "JsonlReportSink",
    "StdoutLogSink",
    "StdoutReportSink",
    "record_to_dict",
]
