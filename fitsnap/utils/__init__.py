"""Logging, metrics, security and request helpers."""
