import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

import click

from exception import PipelineDefinitionError, StepError, StepTimeoutError
from model import PipelineRun, Stage, Step, utcnow

from .animation import run as run_animation
from .services.docker_module import redact


# Действие шага получает сам Step и возвращает строки лога (или None)
StepAction = Callable[[Step], Awaitable[Optional[List[str]]]]


def validate_stages(stages: Sequence[Stage]) -> None:
    """
    Проверяет граф стадий до запуска: уникальные имена стадий и шагов,
    известные предшественники, отсутствие циклов.

    :raises PipelineDefinitionError:
    """
    names = [stage.name for stage in stages]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise PipelineDefinitionError(f"Duplicate stage names: {', '.join(duplicates)}")

    step_names = [step.name for stage in stages for step in stage.steps]
    duplicates = sorted({name for name in step_names if step_names.count(name) > 1})
    if duplicates:
        raise PipelineDefinitionError(f"Duplicate step names: {', '.join(duplicates)}")

    by_name = {stage.name: stage for stage in stages}
    for stage in stages:
        unknown = [need for need in stage.needs if need not in by_name]
        if unknown:
            raise PipelineDefinitionError(
                f"Stage {stage.name} needs unknown stage(s): {', '.join(unknown)}"
            )

    # Обход в глубину: серый узел на стеке = цикл
    state: Dict[str, str] = {}

    def visit(name: str, path: List[str]) -> None:
        if state.get(name) == "done":
            return
        if state.get(name) == "visiting":
            cycle = " -> ".join(path[path.index(name):] + [name])
            raise PipelineDefinitionError(f"Stage dependency cycle: {cycle}")
        state[name] = "visiting"
        for need in by_name[name].needs:
            visit(need, path + [name])
        state[name] = "done"

    for stage in stages:
        visit(stage.name, [])


def next_ready_stage(run: PipelineRun) -> Optional[Stage]:
    """
    Первая (в порядке объявления) pending-стадия, все предшественники
    которой уже succeeded. Стадия с невыполненными needs остаётся pending.
    """
    statuses = {stage.name: stage.status for stage in run.stages}
    for stage in run.stages:
        if stage.status != "pending":
            continue
        if all(statuses.get(need) == "succeeded" for need in stage.needs):
            return stage
    return None


def format_error(error: StepError) -> str:
    return "\n".join([error.description, *error.logs])


class PipelineController:
    """
    Исполняет PipelineRun: одна стадия и один шаг за раз.

    Первый упавший шаг останавливает свою стадию и весь прогон;
    не начатые стадии остаются pending. Повторов нет.
    """

    def __init__(
        self,
        actions: Dict[str, StepAction],
        progress: bool = False,
        secrets: Iterable[str] = (),
    ) -> None:
        self.actions = actions
        self.progress = progress
        self.secrets = [secret for secret in secrets if secret]

    def _redact(self, text: str) -> str:
        return redact(text, self.secrets)

    def _check_actions(self, run: PipelineRun) -> None:
        missing = [
            step.name
            for stage in run.stages
            for step in stage.steps
            if step.name not in self.actions
        ]
        if missing:
            raise PipelineDefinitionError(f"No action registered for step(s): {', '.join(missing)}")

    async def execute(self, run: PipelineRun) -> PipelineRun:
        validate_stages(run.stages)
        self._check_actions(run)

        run.status = "running"
        run.started_at = utcnow()
        try:
            while True:
                stage = next_ready_stage(run)
                if stage is None:
                    break
                await self._execute_stage(stage)
                if stage.status == "failed":
                    break
        except BaseException:
            run.status = "failed"
            run.finished_at = utcnow()
            raise

        if all(stage.status == "succeeded" for stage in run.stages):
            run.status = "succeeded"
        else:
            run.status = "failed"
        run.finished_at = utcnow()
        click.echo(f"Pipeline run {run.run_id}: {run.status}", err=True)
        return run

    async def _execute_stage(self, stage: Stage) -> None:
        stage.status = "running"
        click.echo(f"Stage {stage.name}: running", err=True)
        for step in stage.steps:
            await self._execute_step(stage, step)
            if step.status == "failed":
                stage.status = "failed"
                click.echo(f"Stage {stage.name}: failed at step {step.name}", err=True)
                return
        stage.status = "succeeded"
        click.echo(f"Stage {stage.name}: succeeded", err=True)

    async def _execute_step(self, stage: Stage, step: Step) -> None:
        action = self.actions[step.name]
        step.status = "running"
        step.started_at = utcnow()

        if self.progress:
            pending = run_animation(action, step, text=f"{stage.name} / {step.name}")
        else:
            pending = action(step)

        try:
            logs = await asyncio.wait_for(pending, step.timeout)
        except asyncio.TimeoutError:
            self._fail(step, StepTimeoutError(step.name, step.timeout or 0))
            return
        except StepError as e:
            self._fail(step, e)
            return
        except BaseException:
            step.status = "failed"
            step.finished_at = utcnow()
            raise

        step.logs.extend(self._redact(line) for line in logs or [])
        step.status = "succeeded"
        step.finished_at = utcnow()

    def _fail(self, step: Step, error: StepError) -> None:
        step.logs.extend(self._redact(line) for line in error.logs)
        step.error = self._redact(format_error(error))
        step.status = "failed"
        step.finished_at = utcnow()
        click.echo(f"Step {step.name} failed: {self._redact(error.description)}", err=True)
