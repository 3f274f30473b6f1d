"""Sequential AutoFix pipeline: agent run to draft pull request."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from autofix import actions
from autofix.artifacts import (
    ArtifactUploader,
    DirectoryArtifactUploader,
    UploadResult,
    upload_artifacts,
)
from autofix.config import RunConfig, RunContext
from autofix.errors import AgentExecutionError
from autofix.integrations.git import Git, authenticated_remote_url
from autofix.integrations.github import (
    GitHubClient,
    PullRequest,
    PullRequestClient,
    upsert_pull_request,
)
from autofix.logging import get_logger, log_action
from autofix.pipelines.checks import CheckReport, run_post_checks
from autofix.prompts import (
    PR_TEMPLATE,
    PROMPT_TEMPLATE,
    render_prompt,
    render_summary,
    resolve_template_path,
)
from autofix.providers.agent_provider import (
    AgentProvider,
    AgentRequest,
    AgentResponse,
)
from autofix.text import capture_last_delimited_block, first_non_empty
from autofix.workspace import EXCLUDED_ENTRIES, ScratchFiles

logger = get_logger(__name__)


class PipelineState(str, Enum):
    INIT = "init"
    TOOLS_INSTALLED = "tools_installed"
    CONFIG_WRITTEN = "config_written"
    PROMPT_BUILT = "prompt_built"
    AGENT_RUN = "agent_run"
    FINDING_EXTRACTED = "finding_extracted"
    CONTENT_PREPARED = "content_prepared"
    CHECKS_RUN = "checks_run"
    REPRO_APPENDED = "repro_appended"
    SCRATCH_EXCLUDED = "scratch_excluded"
    PUBLISHED = "published"
    SKIPPED_NO_CHANGES = "skipped_no_changes"
    ARTIFACTS_UPLOADED = "artifacts_uploaded"
    CLEANED_UP = "cleaned_up"
    DONE = "done"


@dataclass(frozen=True)
class PullRequestContent:
    title: str
    body: str


@dataclass(frozen=True)
class PublishResult:
    branch_name: str
    committed: bool
    pull_request: Optional[PullRequest] = None


@dataclass
class RunResult:
    """Outcome of one pipeline run. ``error`` is the single failure message."""

    success: bool
    state: PipelineState
    history: List[PipelineState] = field(default_factory=list)
    branch_name: Optional[str] = None
    summary: str = ""
    issue_description: str = ""
    error: Optional[str] = None
    checks: Optional[CheckReport] = None
    publish: Optional[PublishResult] = None
    upload: Optional[UploadResult] = None

    def outputs(self) -> Dict[str, str]:
        values: Dict[str, str] = {}
        if self.branch_name:
            values["branch_name"] = self.branch_name
        values["summary"] = self.summary
        if self.upload is not None:
            values["artifact_name"] = self.upload.name
        return values


GitHubFactory = Callable[[str, str], PullRequestClient]


class AutofixPipeline:
    """Drive one AutoFix run from tool installation to cleanup.

    Steps run strictly in order and are never retried. Any exception raised
    before cleanup ends the run with a failed :class:`RunResult`; scratch files
    are then left in place for inspection. Artifact upload is best-effort and
    cannot turn a successful run into a failed one.
    """

    def __init__(
        self,
        config: RunConfig,
        context: RunContext,
        *,
        agent: AgentProvider,
        git: Optional[Git] = None,
        github_factory: Optional[GitHubFactory] = None,
        uploader: Optional[ArtifactUploader] = None,
    ) -> None:
        self.config = config
        self.context = context
        self.agent = agent
        self.git = git or Git(context.workspace)
        self.github_factory = github_factory or self._default_github_factory
        self.uploader = uploader or DirectoryArtifactUploader(context.artifact_dir)
        self.scratch = ScratchFiles(context.workspace)
        self.history: List[PipelineState] = [PipelineState.INIT]

    def _default_github_factory(self, owner: str, repo: str) -> PullRequestClient:
        return GitHubClient(
            self.config.github_token,
            owner,
            repo,
            api_url=self.context.api_url,
        )

    @property
    def state(self) -> PipelineState:
        return self.history[-1]

    def _advance(self, state: PipelineState) -> None:
        self.history.append(state)
        logger.debug("Pipeline state: %s", state.value)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> RunResult:
        try:
            self.context.split_repository()
            self.install_tools()
            self.write_agent_config()
            prompt = self.build_prompt()
            pr_template = resolve_template_path(
                self.context.workspace, self.context.template_dir, PR_TEMPLATE
            )
            response = self.run_agent(prompt)
            finding = self.extract_finding()
            content = self.prepare_content(pr_template, finding, response)
            checks = self.run_checks()
            summary = self.append_repro_script(content.body)
            self.exclude_scratch_files()
            publish = self.publish(content.title, summary)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.debug("Run aborted in state %s", self.state.value, exc_info=True)
            actions.set_failed(message)
            return RunResult(
                success=False,
                state=self.state,
                history=list(self.history),
                error=message,
            )

        upload = self.upload_artifacts()
        self.cleanup()

        self._advance(PipelineState.DONE)
        result = RunResult(
            success=True,
            state=PipelineState.DONE,
            history=list(self.history),
            branch_name=publish.branch_name,
            summary=summary,
            issue_description=finding,
            checks=checks,
            publish=publish,
            upload=upload,
        )
        actions.write_outputs(result.outputs(), self.context.github_output)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    @log_action("install-tools")
    def install_tools(self) -> None:
        if self.config.install_tools:
            self.agent.install_tools()
        else:
            logger.info("Tool installation disabled; using tools already on PATH.")
        self._advance(PipelineState.TOOLS_INSTALLED)

    @log_action("write-agent-config")
    def write_agent_config(self) -> None:
        self.agent.configure()
        self._advance(PipelineState.CONFIG_WRITTEN)

    @log_action("build-prompt")
    def build_prompt(self) -> str:
        template_path = resolve_template_path(
            self.context.workspace, self.context.template_dir, PROMPT_TEMPLATE
        )
        prompt = render_prompt(template_path, self.config)
        self.scratch.task.write_text(prompt, encoding="utf-8")
        self._advance(PipelineState.PROMPT_BUILT)
        return prompt

    @log_action("run-agent")
    def run_agent(self, prompt: str) -> AgentResponse:
        request = AgentRequest(
            task=prompt,
            workspace=self.context.workspace,
            task_file=self.scratch.task,
            log_path=self.scratch.agent_log,
            title_path=self.scratch.title,
            body_path=self.scratch.body,
        )
        response = self.agent.run(request)
        if not response.succeeded:
            raise AgentExecutionError(response.exit_code, response.log_path or request.log_path)
        self._advance(PipelineState.AGENT_RUN)
        return response

    @log_action("extract-finding")
    def extract_finding(self) -> str:
        issue_path = self.scratch.issue_description
        issue_path.write_text("", encoding="utf-8")

        log_path = self.scratch.agent_log
        if not log_path.exists():
            actions.warning("Codex log not found; skipping issue description extraction.")
            self._advance(PipelineState.FINDING_EXTRACTED)
            return ""

        extracted = capture_last_delimited_block(
            log_path.read_text(encoding="utf-8", errors="replace")
        )
        issue_path.write_text(extracted, encoding="utf-8")
        if extracted:
            logger.info("Extracted issue description section.")
        else:
            logger.info("No delimited issue description found in codex output.")
        self._advance(PipelineState.FINDING_EXTRACTED)
        return extracted

    @log_action("prepare-content")
    def prepare_content(
        self, template_path: Path, finding: str, response: AgentResponse
    ) -> PullRequestContent:
        """Pick the PR title/body and persist them to the side files.

        Non-blank content the agent wrote wins over the generated defaults.
        """

        title = first_non_empty(
            [
                lambda: response.title,
                lambda: self.config.default_title,
            ]
        )
        body = first_non_empty(
            [
                lambda: response.body,
                lambda: render_summary(template_path, self.config, finding),
            ]
        )
        title = (title or self.config.default_title).strip()
        body = body or ""

        self.scratch.title.write_text(title, encoding="utf-8")
        self.scratch.body.write_text(body, encoding="utf-8")
        self.scratch.summary.write_text(body, encoding="utf-8")
        self._advance(PipelineState.CONTENT_PREPARED)
        return PullRequestContent(title=title, body=body)

    @log_action("post-checks")
    def run_checks(self) -> CheckReport:
        report = run_post_checks(
            self.config.lint_command,
            self.config.test_command,
            cwd=self.context.workspace,
            lint_log=self.scratch.lint_log,
            test_log=self.scratch.test_log,
            diff_path=self.scratch.diff,
        )
        self._advance(PipelineState.CHECKS_RUN)
        return report

    @log_action("append-repro")
    def append_repro_script(self, summary: str) -> str:
        repro = self.scratch.repro_script
        if repro.is_file() and repro.stat().st_size > 0:
            script = repro.read_text(encoding="utf-8")
            snippet = f"\n## Repro Script\n\n```bash\n{script}\n```"
            with self.scratch.summary.open("a", encoding="utf-8") as handle:
                handle.write(snippet)
            summary = f"{summary}{snippet}"
        self._advance(PipelineState.REPRO_APPENDED)
        return summary

    @log_action("exclude-scratch")
    def exclude_scratch_files(self) -> None:
        self.scratch.append_excludes(EXCLUDED_ENTRIES)
        self.git.untrack(EXCLUDED_ENTRIES)
        self._advance(PipelineState.SCRATCH_EXCLUDED)

    @log_action("publish")
    def publish(self, title: str, body: str) -> PublishResult:
        branch = self.context.branch_name(self.config)
        owner, repo = self.context.split_repository()

        self.git.configure_identity()
        self.git.checkout_branch(branch)
        self.git.add_all()
        if not self.git.has_changes():
            logger.info("No changes detected; skipping PR creation.")
            self._advance(PipelineState.SKIPPED_NO_CHANGES)
            return PublishResult(branch_name=branch, committed=False)

        self.git.commit(self.config.commit_message)
        self.git.set_remote_url(
            authenticated_remote_url(
                self.context.server_url, owner, repo, self.config.github_token
            )
        )
        logger.info("Updated git remote with authentication token.")
        self.git.force_push(branch)

        pull_request = upsert_pull_request(
            self.github_factory(owner, repo),
            owner=owner,
            branch=branch,
            base=self.config.pr_base,
            title=title,
            body=body,
        )
        self._advance(PipelineState.PUBLISHED)
        return PublishResult(branch_name=branch, committed=True, pull_request=pull_request)

    def upload_artifacts(self) -> Optional[UploadResult]:
        result = upload_artifacts(
            self.uploader,
            self.context.artifact_name(self.config),
            self.scratch.existing(),
            self.context.workspace,
        )
        self._advance(PipelineState.ARTIFACTS_UPLOADED)
        return result

    def cleanup(self) -> None:
        with actions.group("Cleanup"):
            try:
                removed = self.scratch.cleanup()
            except OSError as exc:
                actions.warning(f"Cleanup incomplete: {exc}")
            else:
                logger.info("Removed %s scratch path(s).", len(removed))
        self._advance(PipelineState.CLEANED_UP)


def create_pipeline(
    config: RunConfig,
    context: RunContext,
    *,
    agent: Optional[AgentProvider] = None,
) -> AutofixPipeline:
    from autofix.providers.agent_provider import create_provider

    provider = agent or create_provider(config.agent, config, context)
    return AutofixPipeline(config, context, agent=provider)


__all__ = [
    "AutofixPipeline",
    "PipelineState",
    "PublishResult",
    "PullRequestContent",
    "RunResult",
    "create_pipeline",
]
