import click

from typing import Dict, List, Optional, Tuple

from model import PipelineRun, Stage, Step, StepKind, TriggerRef
from push2verify.config import STEP_TIMEOUTS
from push2verify.models import RunSummary, Trigger


PUBLISH_STAGE = "publish"
FUNCTIONAL_TESTS_STAGE = "functional-tests"


def _ensure_stage(stages: List[Stage], stage: Stage) -> None:
    if all(existing.name != stage.name for existing in stages):
        stages.append(stage)


def _step(name: str, kind: StepKind, timeouts: Dict[str, float]) -> Step:
    return Step(name=name, kind=kind, timeout=timeouts.get(kind))


def build_pipeline(
    trigger: Trigger,
    timeouts: Optional[Dict[str, float]] = None,
) -> Tuple[PipelineRun, List[str], List[str]]:
    """
    Строим прогон из двух стадий:

    publish: checkout → build-docker-image → push-docker-image
    functional-tests: docker-login → pull → run (+ барьер готовности) →
                      checkout-tests → install-dependencies → run-tests,
                      needs: [publish]

    Возвращает (PipelineRun, logs, warnings).
    """
    logs: List[str] = []
    warnings: List[str] = []
    timeouts = {**STEP_TIMEOUTS, **(timeouts or {})}

    stages: List[Stage] = []

    _ensure_stage(
        stages,
        Stage(
            name=PUBLISH_STAGE,
            steps=[
                _step("checkout", "checkout", timeouts),
                _step("build-docker-image", "build", timeouts),
                _step("push-docker-image", "push", timeouts),
            ],
        ),
    )
    _ensure_stage(
        stages,
        Stage(
            name=FUNCTIONAL_TESTS_STAGE,
            needs=[PUBLISH_STAGE],
            steps=[
                _step("docker-login", "login", timeouts),
                _step("pull-docker-image", "pull", timeouts),
                _step("run-docker-image", "run", timeouts),
                _step("checkout-tests", "checkout", timeouts),
                _step("install-dependencies", "install", timeouts),
                _step("run-tests", "test", timeouts),
            ],
        ),
    )

    if trigger.ref is None:
        warnings.append(
            f"No commit given for branch {trigger.branch}: the current head of the branch is built."
        )

    run = PipelineRun(
        trigger=TriggerRef(branch=trigger.branch, ref=trigger.ref),
        stages=stages,
    )
    logs.append(
        f"Pipeline run {run.run_id} for {trigger.branch}"
        + (f"@{trigger.ref}" if trigger.ref else "")
    )
    return run, logs, warnings


def summarize_pipeline(run: PipelineRun) -> RunSummary:
    """
    Строит краткое резюме прогона для CLI.
    """
    stages = [stage.name for stage in run.stages]
    step_names = [step.name for stage in run.stages for step in stage.steps]
    stages_count = len(stages)
    steps_count = len(step_names)

    if stages_count == 0 and steps_count == 0:
        description = "Pipeline is empty."
    else:
        description = (
            f"Pipeline of {stages_count} stages and {steps_count} steps: "
            f"stages {', '.join(stages)}."
        )
    click.echo(description, err=True)

    return RunSummary(
        stages_count=stages_count,
        steps_count=steps_count,
        stages=stages,
        step_names=step_names,
        description=description,
    )
