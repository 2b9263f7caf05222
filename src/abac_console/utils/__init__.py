"""Shared utilities for abac-console."""
