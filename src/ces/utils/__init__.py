"""Shared utilities: logging, errors, configuration and console output."""
