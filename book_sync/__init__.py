"""Reconcile book records lacking a file link against a scanned-file catalog."""

__version__ = "0.3.0"
