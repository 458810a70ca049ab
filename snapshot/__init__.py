"""Snapshot document, settings and pipeline services."""
