"""Logging and metrics for cmreceiver."""
