import yaml

from push2verify.controller import validate_stages
from push2verify.models import PipelineOptions, Trigger
from push2verify.renders import github as github_render
from push2verify.services.builders import pipeline as builder


def build(**kwargs):
    trigger = Trigger(branch="master", source=".", **kwargs)
    return builder.build_pipeline(trigger)


class TestBuildPipeline:

    def test_two_dependent_stages(self):
        run, logs, _ = build(ref="abc123")

        assert [stage.name for stage in run.stages] == ["publish", "functional-tests"]
        assert run.get_stage("publish").needs == []
        assert run.get_stage("functional-tests").needs == ["publish"]
        assert run.status == "pending"
        assert run.trigger.ref == "abc123"
        assert "@abc123" in logs[0]
        validate_stages(run.stages)

    def test_step_order(self):
        run, _, _ = build()

        assert [s.name for s in run.get_stage("publish").steps] == [
            "checkout", "build-docker-image", "push-docker-image",
        ]
        assert [s.kind for s in run.get_stage("functional-tests").steps] == [
            "login", "pull", "run", "checkout", "install", "test",
        ]

    def test_every_step_is_bounded(self):
        run, _, _ = build()
        assert all(step.timeout for stage in run.stages for step in stage.steps)

    def test_timeouts_can_be_overridden(self):
        run, _, _ = builder.build_pipeline(Trigger(branch="master", source="."), {"build": 5})
        assert run.get_stage("publish").get_step("build-docker-image").timeout == 5

    def test_warns_without_commit(self):
        _, _, warnings = build()
        assert warnings

    def test_summary(self):
        run, _, _ = build()

        summary = builder.summarize_pipeline(run)

        assert summary.stages_count == 2
        assert summary.steps_count == 9
        assert "publish, functional-tests" in summary.description


class TestGithubRender:

    def test_workflow_mirrors_stages(self):
        run, _, _ = build()
        options = PipelineOptions(
            registry="docker.pkg.github.com",
            repository="alex-dukhno/database/database",
            trunk_branches=["master"],
            host_port=5432,
            container_port=5432,
        )

        workflow = yaml.safe_load(github_render.render(run, options))

        assert workflow["on"] == {"push": {"branches": ["master"]}}
        jobs = workflow["jobs"]
        assert list(jobs) == ["publish", "functional-tests"]
        assert jobs["functional-tests"]["needs"] == ["publish"]
        assert "needs" not in jobs["publish"]

        steps = {step["name"]: step for step in jobs["functional-tests"]["steps"]}
        assert "set-up-python" in steps
        assert steps["pull-docker-image"]["run"] == 'docker pull "docker.pkg.github.com/alex-dukhno/database/database:latest"'
        assert steps["run-tests"]["run"] == "pytest -v tests/functional"
        assert "docker run -d -p 5432:5432" in steps["run-docker-image"]["run"]
        assert "secrets.GITHUB_TOKEN" in steps["docker-login"]["env"]["REGISTRY_TOKEN"]
