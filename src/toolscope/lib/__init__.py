"""Shared utilities, error handling and the virtual tool engine."""
