"""Verification pipelines run after the agent."""
