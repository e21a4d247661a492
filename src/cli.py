import settings
import click

from utils import async_click
from exception import CLIException
from push2verify import config
from push2verify.core import Push2VerifyCore
from push2verify.models import Credential, ImageReference, PipelineOptions, RunResponse, Trigger
from push2verify.renders import github as github_render
from push2verify.services.builders import pipeline as builder


def _options(**kwargs) -> PipelineOptions:
    values = {key: value for key, value in kwargs.items() if value is not None}
    image = values.pop("image", None)
    if image:
        try:
            reference = ImageReference.parse(image)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--image")
        values.update(registry=reference.registry, repository=reference.repository, tag=reference.tag)
    if "trunk_branches" in values:
        values["trunk_branches"] = [b.strip() for b in values["trunk_branches"].split(",") if b.strip()]
    return PipelineOptions(**values)


def _report(response: RunResponse, json_output: bool) -> None:
    if json_output:
        click.echo(response.model_dump_json(indent=2))
        return

    for line in response.logs:
        click.echo(line, err=True)
    for warning in response.warnings:
        click.echo(f"warning: {warning}", err=True)

    for stage in response.run.stages:
        click.echo(f"{stage.name}: {stage.status}")
        for step in stage.steps:
            click.echo(f"  {step.name}: {step.status}")

    if response.failed_step:
        click.echo(f"\nFailed step: {response.failed_step}", err=True)
        click.echo(response.diagnostics or "", err=True)
    click.echo(f"Pipeline run {response.run.run_id}: {response.run.status}")


@click.group()
def cli():
    """Build → publish → deploy → verify pipeline for a database service image."""


@cli.command()
@click.argument("source")
@click.option("--branch", default=lambda: config.TRUNK_BRANCHES[0], show_default="first trunk branch", help="Branch that was pushed")
@click.option("--ref", default=None, help="Commit to build (default: head of the branch)")
@click.option("--actor", envvar="GITHUB_ACTOR", default=None, help="Who triggered the run")
@click.option("--trunk-branches", default=None, help="Comma separated branches that trigger the pipeline")
@click.option("--registry", default=None, help="Registry host")
@click.option("--repository", default=None, help="Repository path inside the registry")
@click.option("--tag", default=None, help="Image tag (overwritten on every run)")
@click.option("--image", default=None, help="Full image reference registry/repository:tag, overrides the three options above")
@click.option("--commit-tag/--no-commit-tag", default=False, help="Also publish under the short commit sha")
@click.option("--username", envvar=["PUSH2VERIFY_REGISTRY_USER", "GITHUB_ACTOR"], required=True, help="Registry user")
@click.option("--token", envvar=["PUSH2VERIFY_REGISTRY_TOKEN", "GITHUB_TOKEN"], required=True, show_envvar=True, help="Registry token (read from the environment)")
@click.option("--index-url", default=None, help="Private package index for test dependencies")
@click.option("--index-token", envvar="PUSH2VERIFY_INDEX_TOKEN", default=None, help="Token for --index-url")
@click.option("--dockerfile", default=None)
@click.option("--docker-context", default=None)
@click.option("--host-port", type=int, default=None)
@click.option("--container-port", type=int, default=None)
@click.option("--readiness-timeout", type=float, default=None)
@click.option("--manifest", "requirements", default=None, help="Test dependency manifest")
@click.option("--suite", "test_suite", default=None, help="Functional test suite path")
@click.option("--python", default=None, help="Interpreter used to install and run the tests")
@click.option("--progress/--no-progress", default=False, help="Show a spinner while steps run")
@click.option("--json-output", is_flag=True, help="Print the whole run as JSON")
@async_click
async def run(
    source: str,
    branch: str,
    ref: str,
    actor: str,
    username: str,
    token: str,
    index_url: str,
    index_token: str,
    progress: bool,
    json_output: bool,
    **kwargs,
):
    """Run the pipeline for a push of SOURCE (git URL or directory)."""
    if not json_output:
        click.echo(settings.LOGO + "\n", err=True)

    options = _options(index_url=index_url, **kwargs)
    credential = Credential(username=username, token=token)
    index_credential = None
    if index_token:
        index_credential = Credential(
            username=username,
            token=index_token,
            scope="package-index",
        )

    core = Push2VerifyCore(
        credential,
        options=options,
        index_credential=index_credential,
        progress=progress,
    )
    try:
        response = await core.run_pipeline(
            Trigger(branch=branch, source=source, ref=ref, actor=actor)
        )
    except CLIException as e:
        raise click.ClickException(e.description)

    _report(response, json_output)
    click.get_current_context().exit(response.exit_code)


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["summary", "github"]), default="summary")
@click.option("--branch", default=lambda: config.TRUNK_BRANCHES[0], show_default="first trunk branch")
@click.option("--trunk-branches", default=None)
@click.option("--registry", default=None)
@click.option("--repository", default=None)
@click.option("--tag", default=None)
@click.option("--image", default=None)
def plan(fmt: str, branch: str, **kwargs):
    """Print the stages and steps of the pipeline without running it."""
    options = _options(**kwargs)
    pipeline_run, _, _ = builder.build_pipeline(Trigger(branch=branch, source="."), options.timeouts)

    if fmt == "github":
        click.echo(github_render.render(pipeline_run, options))
        return

    summary = builder.summarize_pipeline(pipeline_run)
    click.echo(summary.description)
    for stage in pipeline_run.stages:
        needs = f" (needs: {', '.join(stage.needs)})" if stage.needs else ""
        click.echo(f"{stage.name}{needs}")
        for step in stage.steps:
            click.echo(f"  {step.name} [{step.kind}, timeout {step.timeout:g}s]")
    click.echo(f"image: {options.image().ref}")


if __name__ == "__main__":
    cli()
