import pytest

from push2verify.core import Push2VerifyCore
from push2verify.models import Trigger
from push2verify.services.verification import VerificationRunner

from conftest import TOKEN


FAILING_SUITE = """\
tests/functional/test_select.py::test_select_literal PASSED              [ 50%]
tests/functional/test_insert.py::test_insert_many FAILED                 [100%]
FAILED tests/functional/test_insert.py::test_insert_many - AssertionError
"""


def make_core(runner, docker, credential, options):
    return Push2VerifyCore(
        credential,
        options=options,
        docker=docker,
        verifier=VerificationRunner(python="python3", runner=runner),
    )


def trigger(source_tree, branch="master"):
    return Trigger(branch=branch, source=str(source_tree), actor="ci-bot")


@pytest.mark.asyncio
class TestPush2VerifyCore:
    """Сценарии прогона целиком, docker и python подменены FakeRunner"""

    async def test_successful_run(self, runner, docker, credential, options_factory, source_tree, listening_port):
        core = make_core(runner, docker, credential, options_factory(listening_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "ok"
        assert response.exit_code == 0
        assert response.run.status == "succeeded"
        assert [s.status for s in response.run.stages] == ["succeeded", "succeeded"]
        assert response.failed_step is None
        assert response.report.passed

        image = "registry.example.com/acme/database/database:latest"
        verbs = [call.args[1] for call in runner.calls if call.args[0] == "docker"]
        assert verbs == ["build", "login", "push", "login", "pull", "run", "rm"]
        assert runner.commands("push") == [["docker", "push", image]]
        assert runner.commands("pull") == [["docker", "pull", image]]
        [run_args] = runner.commands("run")
        assert f"{listening_port}:5432" in run_args

        [tests] = runner.commands("-m", "pytest")
        assert tests == ["python3", "-m", "pytest", "-v", "tests/functional"]

    async def test_build_failure_never_attempts_functional_tests(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        runner.on("build", returncode=1, output="error[E0425]: cannot find value `x` in this scope\n")
        core = make_core(runner, docker, credential, options_factory(free_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "error"
        assert response.exit_code != 0
        assert response.failed_step == "build-docker-image"
        assert "cannot find value" in response.diagnostics
        assert response.run.get_stage("publish").status == "failed"
        functional = response.run.get_stage("functional-tests")
        assert functional.status == "pending"
        assert all(step.status == "pending" for step in functional.steps)
        assert runner.commands("push") == []
        assert runner.commands("run") == []

    async def test_rejected_credential_never_launches_service(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        runner.on("login", returncode=1, output="Error response from daemon: Get https://registry.example.com/v2/: 401 Unauthorized\n")
        core = make_core(runner, docker, credential, options_factory(free_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "error"
        assert response.failed_step == "push-docker-image"
        assert "rejected the credential" in response.diagnostics
        assert runner.commands("pull") == []
        assert runner.commands("run") == []

    async def test_failing_functional_test_is_named(
        self, runner, docker, credential, options_factory, source_tree, listening_port
    ):
        runner.on("-m", "pytest", returncode=1, output=FAILING_SUITE)
        core = make_core(runner, docker, credential, options_factory(listening_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "error"
        assert response.exit_code == 1
        assert response.failed_step == "run-tests"
        assert "tests/functional/test_insert.py::test_insert_many" in response.diagnostics
        assert response.report.passed is False
        assert response.report.failures == ["tests/functional/test_insert.py::test_insert_many"]
        # образ уже опубликован, откатывать нечего
        assert response.run.get_stage("publish").status == "succeeded"
        # контейнер убран
        assert runner.commands("rm")

    async def test_service_that_never_becomes_ready(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        core = make_core(runner, docker, credential, options_factory(free_port, readiness_timeout=0.3))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "error"
        assert response.failed_step == "run-docker-image"
        assert "did not accept connections" in response.diagnostics
        assert runner.commands("-m", "pytest") == []
        assert runner.commands("rm")

    async def test_container_is_removed_when_launch_times_out(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        runner.on("run", returncode=None, timed_out=True)
        core = make_core(runner, docker, credential, options_factory(free_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "error"
        assert response.failed_step == "run-docker-image"
        # id неизвестен, контейнер убирается по имени прогона
        name = f"push2verify-{response.run.run_id[:8]}"
        assert runner.commands("rm") == [["docker", "rm", "-f", name]]
        assert not any("Could not remove container" in w for w in response.warnings)

    async def test_container_is_removed_by_id_after_launch(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        core = make_core(runner, docker, credential, options_factory(free_port, readiness_timeout=0.3))

        await core.run_pipeline(trigger(source_tree))

        assert runner.commands("rm") == [["docker", "rm", "-f", "0123456789abcdef0123456789abcdef"]]

    async def test_rerun_overwrites_the_same_tag(
        self, runner, docker, credential, options_factory, source_tree, listening_port
    ):
        options = options_factory(listening_port)

        first = await make_core(runner, docker, credential, options).run_pipeline(trigger(source_tree))
        second = await make_core(runner, docker, credential, options).run_pipeline(trigger(source_tree))

        assert first.status == second.status == "ok"
        first_push, second_push = runner.commands("push")
        assert first_push == second_push

    async def test_commit_tag_is_published_and_deployed(
        self, runner, docker, credential, options_factory, source_tree, listening_port, monkeypatch
    ):
        from push2verify.services.git_module import LocalRepo, SourceCheckout

        async def checkout(self, source, branch=None, ref=None):
            return LocalRepo(root_dir=source_tree, repo_path=source_tree, logs=[], commit="c0ffee" * 7, is_temporary=False)

        monkeypatch.setattr(SourceCheckout, "checkout", checkout)
        core = make_core(runner, docker, credential, options_factory(listening_port, commit_tag=True))

        response = await core.run_pipeline(trigger(source_tree))

        assert response.status == "ok"
        pushed = [args[2] for args in runner.commands("push")]
        assert pushed == [
            "registry.example.com/acme/database/database:latest",
            "registry.example.com/acme/database/database:c0ffeec0ffee",
        ]
        assert runner.commands("pull") == [["docker", "pull", pushed[1]]]

    async def test_non_trunk_push_is_ignored(self, runner, docker, credential, options_factory, source_tree, free_port):
        core = make_core(runner, docker, credential, options_factory(free_port))

        response = await core.run_pipeline(trigger(source_tree, branch="feature/x"))

        assert response.status == "ok"
        assert response.run.status == "pending"
        assert runner.calls == []
        assert any("not a trunk branch" in w for w in response.warnings)

    async def test_token_never_reaches_the_response(
        self, runner, docker, credential, options_factory, source_tree, free_port
    ):
        runner.on("login", returncode=1, output=f"bad token {TOKEN}\n")
        core = make_core(runner, docker, credential, options_factory(free_port))

        response = await core.run_pipeline(trigger(source_tree))

        assert TOKEN not in response.model_dump_json()
