from dataclasses import dataclass, field
from typing import Dict, List, Optional

from model import PipelineRun, Step
from .controller import PipelineController, StepAction
from .services.builders import pipeline as builder
from .services.builders.image import ImageBuilder
from .services.docker_module import DockerCli
from .services.git_module import LocalRepo, SourceCheckout
from .services.launcher import ServiceLauncher
from .services.registry import RegistryPublisher
from .services.verification import VerificationError, VerificationRunner
from .models import (
    Credential,
    ImageReference,
    PipelineOptions,
    RunResponse,
    ServiceHandle,
    Trigger,
    VerificationReport,
)


@dataclass
class RunContext:
    """
    Состояние, которое шаги одного прогона передают друг другу.
    Живёт ровно один прогон.
    """

    checkouts: List[LocalRepo] = field(default_factory=list)
    source: Optional[LocalRepo] = None
    tests_source: Optional[LocalRepo] = None
    references: List[ImageReference] = field(default_factory=list)
    deploy_reference: Optional[ImageReference] = None
    # Имя контейнера известно до docker run, handle только после
    container: Optional[str] = None
    handle: Optional[ServiceHandle] = None
    report: Optional[VerificationReport] = None


class Push2VerifyCore:
    """
    Контроллер пайплайна: push в trunk-ветку → publish → functional-tests.

    Учётные данные передаются явно и попадают только в шаги, которым нужны.
    """

    def __init__(
        self,
        credential: Credential,
        options: Optional[PipelineOptions] = None,
        index_credential: Optional[Credential] = None,
        docker: Optional[DockerCli] = None,
        checkout: Optional[SourceCheckout] = None,
        verifier: Optional[VerificationRunner] = None,
        progress: bool = False,
    ):
        self.credential = credential
        self.index_credential = index_credential
        self.options = options or PipelineOptions()
        self.docker = docker or DockerCli()
        self.checkout = checkout or SourceCheckout()
        self.progress = progress

        self.image_builder = ImageBuilder(
            self.docker,
            dockerfile=self.options.dockerfile,
            context=self.options.docker_context,
        )
        self.publisher = RegistryPublisher(self.docker)
        self.launcher = ServiceLauncher(
            self.docker,
            host=self.options.service_host,
            host_port=self.options.host_port,
            container_port=self.options.container_port,
            readiness_timeout=self.options.readiness_timeout,
            readiness_interval=self.options.readiness_interval,
        )
        self.verifier = verifier or VerificationRunner(
            python=self.options.python,
            host_env=self.options.service_host_env,
            port_env=self.options.service_port_env,
            index_url=self.options.index_url,
        )

        self.logs: list[str] = []
        self.warnings: list[str] = []

    def _secrets(self) -> List[str]:
        secrets = [self.credential.secret()]
        if self.index_credential is not None:
            secrets.append(self.index_credential.secret())
        return secrets

    async def run_pipeline(self, trigger: Trigger) -> RunResponse:
        run, pipeline_logs, pipeline_warnings = builder.build_pipeline(trigger, self.options.timeouts)
        self.logs.extend(pipeline_logs)
        self.warnings.extend(pipeline_warnings)
        summary = builder.summarize_pipeline(run)

        if trigger.branch not in self.options.trunk_branches:
            self.warnings.append(
                f"Branch {trigger.branch} is not a trunk branch "
                f"({', '.join(self.options.trunk_branches)}), pipeline not triggered."
            )
            return RunResponse(
                status="ok",
                run=run,
                summary=summary,
                logs=self.logs,
                warnings=self.warnings,
            )

        context = RunContext()
        controller = PipelineController(
            self._actions(trigger, run, context),
            progress=self.progress,
            secrets=self._secrets(),
        )
        try:
            await controller.execute(run)
        finally:
            await self._teardown(context)

        self._collect_step_logs(run)
        failed = run.failed_step()
        return RunResponse(
            status="ok" if run.status == "succeeded" else "error",
            run=run,
            summary=summary,
            logs=self.logs,
            warnings=self.warnings,
            failed_step=failed.name if failed else None,
            diagnostics=failed.error if failed else None,
            report=context.report,
        )

    def _actions(self, trigger: Trigger, run: PipelineRun, context: RunContext) -> Dict[str, StepAction]:
        options = self.options
        credential = self.credential

        async def checkout(step: Step) -> List[str]:
            source = await self.checkout.checkout(trigger.source, trigger.branch, trigger.ref)
            context.checkouts.append(source)
            context.source = source

            context.references = [options.image()]
            if options.commit_tag and source.short_commit:
                context.references.append(options.image(source.short_commit))
            elif options.commit_tag:
                self.warnings.append("Commit is unknown, image is published only as " + options.tag)
            # Разворачиваем самую точную из опубликованных ссылок
            context.deploy_reference = context.references[-1]
            return source.logs

        async def build_image(step: Step) -> List[str]:
            _, logs = await self.image_builder.build(
                context.source.repo_path,
                context.references,
                timeout=step.timeout,
            )
            return logs

        async def push_image(step: Step) -> List[str]:
            return await self.publisher.publish(credential, context.references, timeout=step.timeout)

        async def docker_login(step: Step) -> List[str]:
            return await self.launcher.login(credential, options.registry, timeout=step.timeout)

        async def pull_image(step: Step) -> List[str]:
            return await self.launcher.pull(context.deploy_reference, timeout=step.timeout)

        async def run_image(step: Step) -> List[str]:
            context.container = f"push2verify-{run.run_id[:8]}"
            handle, logs = await self.launcher.launch(
                context.deploy_reference,
                name=context.container,
                timeout=step.timeout,
            )
            context.handle = handle
            logs.extend(await self.launcher.wait_until_ready(handle))
            return logs

        async def checkout_tests(step: Step) -> List[str]:
            source = await self.checkout.checkout(trigger.source, trigger.branch, trigger.ref)
            context.checkouts.append(source)
            context.tests_source = source
            return source.logs

        async def install_dependencies(step: Step) -> List[str]:
            return await self.verifier.install(
                context.tests_source.repo_path,
                options.requirements,
                index_credential=self.index_credential,
                timeout=step.timeout,
            )

        async def run_tests(step: Step) -> List[str]:
            try:
                report = await self.verifier.run_suite(
                    context.tests_source.repo_path,
                    options.test_suite,
                    context.handle,
                    timeout=step.timeout,
                )
            except VerificationError as e:
                context.report = VerificationReport(
                    passed=False,
                    exit_code=e.exit_code if e.exit_code is not None else -1,
                    failures=e.failures,
                    output="\n".join(e.logs),
                )
                raise
            context.report = report
            return [f"{options.test_suite}: all functional tests passed"]

        return {
            "checkout": checkout,
            "build-docker-image": build_image,
            "push-docker-image": push_image,
            "docker-login": docker_login,
            "pull-docker-image": pull_image,
            "run-docker-image": run_image,
            "checkout-tests": checkout_tests,
            "install-dependencies": install_dependencies,
            "run-tests": run_tests,
        }

    async def _teardown(self, context: RunContext) -> None:
        if context.container is not None:
            # docker run мог создать контейнер, даже если не успел вернуть его id
            target = context.handle.container_id if context.handle else context.container
            removed, logs = await self.launcher.stop(target, timeout=self.options.timeouts.get("run"))
            self.logs.extend(logs)
            if not removed:
                self.warnings.append(f"Could not remove container {context.container}.")

        for checkout in context.checkouts:
            try:
                checkout.cleanup()
            except OSError as e:
                self.warnings.append(f"Could not remove temporary checkout {checkout.root_dir}: {e}")
            else:
                if checkout.is_temporary:
                    self.logs.append(f"Temporary checkout {checkout.root_dir} removed.")

    def _collect_step_logs(self, run: PipelineRun) -> None:
        for stage in run.stages:
            for step in stage.steps:
                if step.status == "pending":
                    continue
                self.logs.append(f"[{stage.name}/{step.name}] {step.status}")
                self.logs.extend(f"  {line}" for line in step.logs)
