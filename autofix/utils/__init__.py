"""Shared helpers for AutoFix."""
