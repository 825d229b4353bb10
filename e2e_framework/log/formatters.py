"""
Log record formatting and context injection.

Every record carries the logger label plus the worker/scenario the process
is currently executing, rendered as a `(worker/scenario)` prefix.
"""

import logging


class ContextFilter(logging.Filter):
    """Stamp label, worker and scenario onto each record"""

    def __init__(self, label: str, context):
        super().__init__()
        self.label = label
        self.context = context

    def filter(self, record: logging.LogRecord) -> bool:
        worker = self.context.worker_id or ""
        scenario = self.context.scenario_name or ""
        record.label = self.label
        record.worker = worker
        record.scenario = scenario
        ctx = "/".join(part for part in (worker, scenario) if part)
        record.context_prefix = f" ({ctx})" if ctx else ""
        return True


class ConsoleFormatter(logging.Formatter):
    """HH:MM:SS.mmm LEVEL [label] (ctx) message"""

    default_time_format = "%H:%M:%S"
    default_msec_format = "%s.%03d"

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s [%(label)s]%(context_prefix)s %(message)s")


class FileFormatter(logging.Formatter):
    """YYYY-MM-DD HH:MM:SS.mmm LEVEL   [label] (ctx) message"""

    default_time_format = "%Y-%m-%d %H:%M:%S"
    default_msec_format = "%s.%03d"

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s [%(label)s]%(context_prefix)s %(message)s")
