import asyncio
import socket
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pytest
import pytest_asyncio

from push2verify.models import Credential, PipelineOptions
from push2verify.services.docker_module import CommandResult, DockerCli


TOKEN = "s3cr3t-registry-token"


@dataclass
class Call:
    args: List[str]
    input: Optional[str]
    cwd: Optional[str]
    env: Optional[dict]
    timeout: Optional[float]


class FakeRunner:
    """
    Подменяет запуск процессов: отвечает по первым аргументам после бинаря
    (например ("push",) или ("-m", "pytest")) и записывает все вызовы.
    Более позднее правило перекрывает более раннее.
    """

    def __init__(self):
        self.calls: List[Call] = []
        self.rules: List[tuple] = []

    def on(self, *prefix: str, returncode: Optional[int] = 0, output: str = "", timed_out: bool = False):
        self.rules.append((prefix, returncode, output, timed_out))
        return self

    async def __call__(self, args: Sequence[str], *, input=None, cwd=None, env=None, timeout=None):
        args = list(args)
        self.calls.append(Call(args, input, str(cwd) if cwd else None, env, timeout))
        for prefix, returncode, output, timed_out in reversed(self.rules):
            if tuple(args[1:1 + len(prefix)]) == prefix:
                return CommandResult(args=args, returncode=returncode, output=output, timed_out=timed_out)
        return CommandResult(args=args, returncode=0, output="")

    def commands(self, *prefix: str) -> List[List[str]]:
        return [call.args for call in self.calls if tuple(call.args[1:1 + len(prefix)]) == prefix]


@pytest.fixture
def runner() -> FakeRunner:
    fake = FakeRunner()
    fake.on("build", output="Step 1/1 : FROM postgres\nSuccessfully built 1a2b3c4d5e6f\n")
    fake.on("login", output="Login Succeeded\n")
    fake.on("run", output="0123456789abcdef0123456789abcdef\n")
    fake.on("inspect", output="true\n")
    fake.on("-m", "pytest", output="tests/functional/test_select.py::test_select PASSED [100%]\n")
    return fake


@pytest.fixture
def docker(runner) -> DockerCli:
    return DockerCli(runner=runner)


@pytest.fixture
def credential() -> Credential:
    return Credential(username="ci-bot", token=TOKEN)


@pytest.fixture
def free_port() -> int:
    """Порт, на котором точно никто не слушает."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@asynccontextmanager
async def _serve(handle):
    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()
        await server.wait_closed()


@pytest_asyncio.fixture
async def listening_port():
    """Порт с живым TCP-сервером на время теста."""

    async def handle(reader, writer):
        # держит соединение, пока клиент его не закроет
        await reader.read()
        writer.close()

    async with _serve(handle) as port:
        yield port


@pytest_asyncio.fixture
async def closing_port():
    """Порт, который принимает соединение и сразу закрывает его (как docker-proxy без сервиса)."""

    async def handle(reader, writer):
        writer.close()

    async with _serve(handle) as port:
        yield port


@pytest.fixture
def source_tree(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM postgres:16\n")
    functional = tmp_path / "tests" / "functional"
    functional.mkdir(parents=True)
    (functional / "requirements.txt").write_text("pytest\npsycopg2-binary\n")
    return tmp_path


@pytest.fixture
def options_factory():
    def make(port: int, **overrides) -> PipelineOptions:
        values = dict(
            registry="registry.example.com",
            repository="acme/database/database",
            tag="latest",
            trunk_branches=["master"],
            service_host="127.0.0.1",
            host_port=port,
            container_port=5432,
            readiness_timeout=2.0,
            readiness_interval=0.05,
        )
        values.update(overrides)
        return PipelineOptions(**values)

    return make
