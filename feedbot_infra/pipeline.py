"""Sequential fail-fast build and publish pipeline.

The pipeline is an ordered tuple of step values evaluated by one driver loop:

    SourceLogin -> BuildPrimary -> BuildTest -> DestinationLogin -> Publish x4

The first failing step raises its :class:`PipelineError`; later steps are
recorded as skipped and never run. Already pushed images are left in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, NoReturn, Optional, Sequence, Tuple, Type, Union

from feedbot_infra.containers import ContainerSpec, available_containers
from feedbot_infra.core.config import PipelineConfig
from feedbot_infra.core.exceptions import AuthError, BuildError, PipelineError, PublishError
from feedbot_infra.core.logging import log_with_context, set_run_id
from feedbot_infra.docker import (
    build_args,
    build_image,
    ecr_password_args,
    fetch_ecr_password,
    login_args,
    push_image,
    registry_login,
)
from feedbot_infra.utils import DryRunToolRunner, SubprocessToolRunner, ToolError, ToolRunner

LOGGER = logging.getLogger(__name__)

ECR_USERNAME = "AWS"


class StepKind(str, Enum):
    LOGIN = "login"
    BUILD = "build"
    PUBLISH = "publish"


class StepStatus(str, Enum):
    """Lifecycle state for a pipeline step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class LoginStep:
    """Authenticate to a registry.

    With ``ecr_region`` set the password is vended by the AWS CLI at run
    time; otherwise ``username``/``password`` are used as given.
    """

    name: str
    registry: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    ecr_region: Optional[str] = None

    kind: ClassVar[StepKind] = StepKind.LOGIN


@dataclass(frozen=True)
class BuildStep:
    name: str
    spec: ContainerSpec
    refs: Tuple[str, ...]

    kind: ClassVar[StepKind] = StepKind.BUILD


@dataclass(frozen=True)
class PublishStep:
    name: str
    image_ref: str

    kind: ClassVar[StepKind] = StepKind.PUBLISH


Step = Union[LoginStep, BuildStep, PublishStep]


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass
class StepRecord:
    name: str
    kind: StepKind
    status: StepStatus = StepStatus.PENDING
    started_at: str = ""
    finished_at: str = ""
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "error": self.error,
        }


@dataclass
class PipelineRun:
    """Outcome of one pipeline execution."""

    revision: str
    image_tag: str
    registry: str
    steps: List[StepRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.steps) and all(record.status is StepStatus.COMPLETE for record in self.steps)

    @property
    def failed_step(self) -> Optional[StepRecord]:
        return next((record for record in self.steps if record.status is StepStatus.FAILED), None)

    def to_dict(self) -> Dict[str, Any]:
        failed = self.failed_step
        return {
            "revision": self.revision,
            "image_tag": self.image_tag,
            "registry": self.registry,
            "status": "COMPLETE" if self.succeeded else "FAILED",
            "failed_step": failed.name if failed else None,
            "steps": [record.to_dict() for record in self.steps],
        }


def build_pipeline(config: PipelineConfig) -> Tuple[Step, ...]:
    """Return the ordered steps for ``config``."""
    image_tag = config.image_tag
    specs = list(available_containers())
    token = config.docker_token.get_secret_value() if config.docker_token else None

    steps: List[Step] = [
        LoginStep(
            name="SourceLogin",
            registry=config.source_registry,
            username=config.docker_username,
            password=token,
        )
    ]
    for spec in specs:
        steps.append(
            BuildStep(
                name=f"Build{spec.target.value.capitalize()}",
                spec=spec,
                refs=spec.release_refs(config.registry, image_tag),
            )
        )
    steps.append(
        LoginStep(
            name="DestinationLogin",
            registry=config.registry,
            username=ECR_USERNAME,
            ecr_region=config.region,
        )
    )
    for spec in specs:
        for tag in spec.release_tags(image_tag):
            steps.append(
                PublishStep(
                    name=f"Publish[{spec.repository}:{tag}]",
                    image_ref=spec.ref(config.registry, tag),
                )
            )
    return tuple(steps)


def step_commands(step: Step, config: PipelineConfig) -> List[Tuple[str, List[str]]]:
    """Return the commands ``step`` would run, without secrets."""
    if isinstance(step, LoginStep):
        commands: List[Tuple[str, List[str]]] = []
        if step.ecr_region:
            commands.append((config.aws_bin, ecr_password_args(step.ecr_region)))
        commands.append((config.docker_bin, login_args(step.username or "<missing>", step.registry)))
        return commands
    if isinstance(step, BuildStep):
        return [
            (
                config.docker_bin,
                build_args(step.spec, step.refs, dockerfile=config.dockerfile, context=config.context),
            )
        ]
    return [(config.docker_bin, ["push", step.image_ref])]


class PipelineExecutor:
    """Run steps strictly in order, stopping at the first failure."""

    def __init__(self, config: PipelineConfig, runner: ToolRunner) -> None:
        self.config = config
        self.runner = runner
        self._handlers: Dict[StepKind, Callable[[Any], None]] = {
            StepKind.LOGIN: self._login,
            StepKind.BUILD: self._build,
            StepKind.PUBLISH: self._publish,
        }

    def run(self, steps: Sequence[Step]) -> PipelineRun:
        run = PipelineRun(
            revision=self.config.revision,
            image_tag=self.config.image_tag,
            registry=self.config.registry,
            steps=[StepRecord(name=step.name, kind=step.kind) for step in steps],
        )

        for index, step in enumerate(steps):
            record = run.steps[index]
            record.status = StepStatus.RUNNING
            record.started_at = _now()
            LOGGER.info("[pipeline] %s: starting", step.name)
            try:
                self._handlers[step.kind](step)
            except PipelineError as exc:
                record.status = StepStatus.FAILED
                record.finished_at = _now()
                record.error = exc.to_dict()
                for pending in run.steps[index + 1 :]:
                    pending.status = StepStatus.SKIPPED
                exc.metadata["run"] = run.to_dict()
                log_with_context(
                    LOGGER,
                    "error",
                    f"[pipeline] {step.name} failed: {exc}",
                    extra={"step": step.name, "code": exc.code, "exit_code": exc.exit_code},
                )
                raise
            record.status = StepStatus.COMPLETE
            record.finished_at = _now()
            LOGGER.info("[pipeline] %s: complete", step.name)

        LOGGER.info(
            "[pipeline] Published %d image references for tag %s",
            self._count(steps, StepKind.PUBLISH),
            run.image_tag,
        )
        return run

    @staticmethod
    def _count(steps: Sequence[Step], kind: StepKind) -> int:
        return sum(1 for step in steps if step.kind is kind)

    @staticmethod
    def _raise(
        error_cls: Type[PipelineError],
        step: Step,
        message: str,
        exc: ToolError,
        **metadata: Any,
    ) -> NoReturn:
        raise error_cls(
            message,
            step=step.name,
            exit_code=exc.returncode,
            output=exc.stderr,
            metadata=dict(metadata),
        ) from exc

    def _login(self, step: LoginStep) -> None:
        registry = step.registry or "the default registry"
        password = step.password
        if step.ecr_region:
            try:
                password = fetch_ecr_password(self.runner, step.ecr_region, aws_bin=self.config.aws_bin)
            except ToolError as exc:
                message = f"Could not obtain a registry password for region {step.ecr_region}"
                self._raise(AuthError, step, message, exc)
        if not step.username or not password:
            raise AuthError(f"Missing credentials for {registry}", step=step.name)
        try:
            registry_login(
                self.runner,
                step.username,
                password,
                registry=step.registry,
                docker_bin=self.config.docker_bin,
            )
        except ToolError as exc:
            self._raise(AuthError, step, f"Login to {registry} was rejected", exc)

    def _build(self, step: BuildStep) -> None:
        try:
            build_image(
                self.runner,
                step.spec,
                step.refs,
                dockerfile=self.config.dockerfile,
                context=self.config.context,
                docker_bin=self.config.docker_bin,
            )
        except ToolError as exc:
            self._raise(
                BuildError,
                step,
                f"Build of target '{step.spec.stage}' failed",
                exc,
                target=step.spec.target.value,
            )

    def _publish(self, step: PublishStep) -> None:
        try:
            push_image(self.runner, step.image_ref, docker_bin=self.config.docker_bin)
        except ToolError as exc:
            self._raise(PublishError, step, f"Push of {step.image_ref} failed", exc, image=step.image_ref)


def run_pipeline(
    config: PipelineConfig,
    runner: Optional[ToolRunner] = None,
    *,
    dry_run: bool = False,
) -> PipelineRun:
    """Build, tag and publish both images for ``config``."""
    if runner is None:
        runner = DryRunToolRunner() if dry_run else SubprocessToolRunner()

    set_run_id(config.image_tag)
    log_with_context(
        LOGGER,
        "info",
        f"[pipeline] Publishing revision {config.revision} as tag {config.image_tag}",
        extra={"config": config.describe(), "dry_run": dry_run},
    )
    return PipelineExecutor(config, runner).run(build_pipeline(config))


__all__ = [
    "BuildStep",
    "LoginStep",
    "PipelineExecutor",
    "PipelineRun",
    "PublishStep",
    "Step",
    "StepKind",
    "StepRecord",
    "StepStatus",
    "build_pipeline",
    "run_pipeline",
    "step_commands",
]
