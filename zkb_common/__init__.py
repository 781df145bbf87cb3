"""Shared helpers for zk-benchmark-lib."""

from zkb_common.api import ZKBError, configure_logging

__all__ = ["configure_logging", "ZKBError"]
