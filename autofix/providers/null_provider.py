"""Agent provider that leaves the checkout untouched."""

from __future__ import annotations

from autofix.logging import get_logger
from autofix.providers.agent_provider import AgentProvider, AgentRequest, AgentResponse

logger = get_logger(__name__)


class NullProvider(AgentProvider):
    """Succeeds without changing anything, for dry runs of the pipeline."""

    name = "null"

    def run(self, request: AgentRequest) -> AgentResponse:
        request.log_path.parent.mkdir(parents=True, exist_ok=True)
        request.log_path.write_text("", encoding="utf-8")
        logger.info("Null agent selected; skipping code changes.")
        title, body = self.collect_side_files(request)
        return AgentResponse(
            exit_code=0,
            output="",
            log_path=request.log_path,
            title=title,
            body=body,
        )
