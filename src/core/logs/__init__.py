"""
Log module.

Reconstructs structured logs from log slice events:
- LogReconstructor: phase -> section tree and raw buffer for one job
- LogCutter: turns raw marked-up log text into log slice events
"""

from src.core.logs.cutter import LogCutter, cut_text
from src.core.logs.reconstruction import DEFAULT_PHASE, LogReconstructor

__all__ = ["DEFAULT_PHASE", "LogCutter", "LogReconstructor", "cut_text"]
