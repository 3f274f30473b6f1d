"""Coding-agent providers."""

from autofix.providers.agent_provider import (
    AgentProvider,
    AgentRequest,
    AgentResponse,
    create_provider,
)

__all__ = ["AgentProvider", "AgentRequest", "AgentResponse", "create_provider"]
