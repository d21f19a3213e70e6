"""
Structured logging for Backend SolView.

JSON logs with timestamp, event_type and keyword context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_solview.solview_logging.logger import bind_signature, get_logger

__all__ = ["bind_signature", "get_logger"]
