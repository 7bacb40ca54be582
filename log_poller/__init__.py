"""
Incremental CloudWatch Logs poller
"""

__version__ = "1.0.0"
