"""Codex provider that shells out to the Codex CLI."""

from __future__ import annotations

import json
import os
import shlex
import shutil
import subprocess
import sys
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from autofix import actions
from autofix.config import RunConfig, RunContext
from autofix.errors import CommandError
from autofix.logging import get_logger
from autofix.providers.agent_provider import AgentProvider, AgentRequest, AgentResponse

logger = get_logger(__name__)


def _toml_string(value: str) -> str:
    # JSON string escapes are a subset of TOML basic-string escapes.
    return json.dumps(value, ensure_ascii=False)


class CodexProvider(AgentProvider):
    """Runs ``codex exec`` non-interactively against the checkout."""

    name = "codex"
    CLI_PACKAGE = "@openai/codex@0.31.0"
    MCP_PACKAGE = "@rollbar/mcp-server"
    PROFILE = "ci"
    REASONING_EFFORT = "high"
    _CLI_DEFAULT_EXECUTABLE = "codex"

    def __init__(
        self,
        config: RunConfig,
        context: RunContext,
        *,
        cli_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.config = config
        self.context = context
        self._cli_path = cli_path
        self._environ = dict(os.environ if environ is None else environ)
        self._stream = stream

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def install_tools(self) -> None:
        with actions.group("Install Codex CLI and Rollbar MCP", stream=self._stream):
            for package in (self.CLI_PACKAGE, self.MCP_PACKAGE):
                self._run_checked(["npm", "install", "-g", package])

    def _run_checked(self, command: Sequence[str]) -> None:
        logger.info("Running %s", shlex.join(command))
        try:
            result = subprocess.run(list(command), cwd=self.context.workspace, check=False)
        except FileNotFoundError as exc:
            raise CommandError(command, 127, str(exc)) from exc
        if result.returncode != 0:
            raise CommandError(command, result.returncode)

    def config_lines(self) -> list[str]:
        lines = [
            f"[profiles.{self.PROFILE}]",
            'approval-policy = "never"',
            'sandbox_mode = "workspace-write"',
            f"model = {_toml_string(self.config.codex_model)}",
            'cd = "."',
            "",
            "[mcp_servers.rollbar]",
            'command = "npx"',
            f'args = ["-y", {_toml_string(self.MCP_PACKAGE)}]',
            "",
            "[mcp_servers.rollbar.env]",
            f"ROLLBAR_ACCESS_TOKEN = {_toml_string(self.config.rollbar_access_token)}",
        ]
        workspace = str(self.context.workspace)
        if workspace:
            lines.extend(["", f"[projects.{_toml_string(workspace)}]", 'trust_level = "trusted"'])
        return lines

    def configure(self) -> Path:
        with actions.group("Write Codex configuration", stream=self._stream):
            codex_dir = self.context.home / ".codex"
            codex_dir.mkdir(parents=True, exist_ok=True)
            config_path = codex_dir / "config.toml"
            config_path.write_text("\n".join(self.config_lines()), encoding="utf-8")
            logger.info("Codex config written to %s (token redacted)", config_path)
        return config_path

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------
    def _resolve_cli_path(self) -> str:
        if self._cli_path:
            return self._cli_path
        return shutil.which(self._CLI_DEFAULT_EXECUTABLE) or self._CLI_DEFAULT_EXECUTABLE

    def build_command(self, request: AgentRequest) -> list[str]:
        return [
            self._resolve_cli_path(),
            "exec",
            f"--profile={self.PROFILE}",
            "--sandbox",
            "workspace-write",
            "-C",
            str(request.workspace),
            "--model",
            self.config.codex_model,
            "--config",
            f"model_reasoning_effort={self.REASONING_EFFORT}",
            "--",
            request.task,
        ]

    def build_env(self, request: AgentRequest) -> dict[str, str]:
        env = dict(self._environ)
        env.update(
            {
                "OPENAI_API_KEY": self.config.openai_api_key,
                "TASK_FILE": str(request.task_file),
                "CI": "1",
                "TERM": "dumb",
            }
        )
        env.update(request.env)
        return env

    def run(self, request: AgentRequest) -> AgentResponse:
        """Run the agent, tee-ing its combined output to the log and console."""

        command = self.build_command(request)
        stream = self._stream or sys.stdout
        request.log_path.parent.mkdir(parents=True, exist_ok=True)
        chunks: list[str] = []
        start_time = time.monotonic()

        with actions.group("Run Codex AutoFix", stream=stream):
            logger.info("Launching Codex CLI in %s", request.workspace)
            with request.log_path.open("w", encoding="utf-8") as log_handle:
                try:
                    process = subprocess.Popen(
                        command,
                        cwd=request.workspace,
                        env=self.build_env(request),
                        stdout=subprocess.PIPE,
                        stderr=subprocess.STDOUT,
                        text=True,
                        encoding="utf-8",
                        errors="replace",
                    )
                except FileNotFoundError as exc:
                    message = f"Codex CLI not found: {exc}\n"
                    log_handle.write(message)
                    stream.write(message)
                    logger.error("Codex CLI executable %s not found", command[0])
                    return AgentResponse(exit_code=127, output=message, log_path=request.log_path)

                assert process.stdout is not None
                for line in process.stdout:
                    stream.write(line)
                    log_handle.write(line)
                    chunks.append(line)
                exit_code = process.wait()
            stream.flush()

            logger.info(
                "codex exec exit code: %s (%.1fs)",
                exit_code,
                time.monotonic() - start_time,
            )

        title, body = self.collect_side_files(request)
        return AgentResponse(
            exit_code=exit_code,
            output="".join(chunks),
            log_path=request.log_path,
            title=title,
            body=body,
        )


__all__ = ["CodexProvider"]
