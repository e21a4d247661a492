from typing import Any, Dict, List

import yaml

from model import PipelineRun, Step
from push2verify.models import PipelineOptions


def _step_body(step: Step, options: PipelineOptions) -> Dict[str, Any]:
    latest = options.image().ref
    commands = {
        "checkout": {"uses": "actions/checkout@v4"},
        "build": {
            "run": f"docker build -f {options.dockerfile} -t {latest} {options.docker_context}",
        },
        "push": {
            "run": (
                f'echo "$REGISTRY_TOKEN" | docker login {options.registry} '
                f'-u "$GITHUB_ACTOR" --password-stdin\n'
                f"docker push {latest}"
            ),
            "env": {"REGISTRY_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
        },
        "login": {
            "run": (
                f'echo "$REGISTRY_TOKEN" | docker login {options.registry} '
                f'-u "$GITHUB_ACTOR" --password-stdin'
            ),
            "env": {"REGISTRY_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
        },
        "pull": {"run": f'docker pull "{latest}"'},
        "run": {
            "run": (
                f"docker run -d -p {options.host_port}:{options.container_port} {latest}\n"
                f"timeout {int(options.readiness_timeout)} bash -c "
                f"'until (echo > /dev/tcp/{options.service_host}/{options.host_port}) 2>/dev/null; "
                f"do sleep {options.readiness_interval:g}; done'"
            ),
        },
        "install": {
            "run": (
                "python -m pip install --upgrade pip\n"
                f"pip install -r {options.requirements}"
            ),
        },
        "test": {
            "run": f"pytest -v {options.test_suite}",
            "env": {
                options.service_host_env: options.service_host,
                options.service_port_env: str(options.host_port),
            },
        },
    }
    body: Dict[str, Any] = {"name": step.name}
    body.update(commands[step.kind])
    if step.timeout:
        body["timeout-minutes"] = max(1, int(round(step.timeout / 60)))
    return body


def render(run: PipelineRun, options: PipelineOptions) -> str:
    """
    GitHub Actions workflow для того же пайплайна: по job'у на стадию,
    needs = предшественники стадии.
    """
    jobs: Dict[str, Any] = {}
    for stage in run.stages:
        steps: List[Dict[str, Any]] = []
        for step in stage.steps:
            steps.append(_step_body(step, options))
            # Тестам нужен python до установки зависимостей
            if step.kind == "checkout" and any(s.kind == "install" for s in stage.steps):
                steps.append({
                    "name": "set-up-python",
                    "uses": "actions/setup-python@v5",
                    "with": {"python-version": "3.x"},
                })
        job: Dict[str, Any] = {"runs-on": "ubuntu-latest"}
        if stage.needs:
            job["needs"] = list(stage.needs)
        job["steps"] = steps
        jobs[stage.name] = job

    workflow = {
        "name": "Merge",
        "on": {"push": {"branches": list(options.trunk_branches)}},
        "defaults": {"run": {"shell": "bash"}},
        "jobs": jobs,
    }
    return yaml.safe_dump(workflow, sort_keys=False, width=120)
