import re
import sys
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

import click

from push2verify.models import Credential, ServiceHandle, VerificationReport
from push2verify.services.docker_module import CommandRunner, describe, redact, run_command

from .exceptions import DependencyInstallError, VerificationError


# "tests/functional/test_x.py::test_y FAILED  [ 50%]" и "FAILED tests/...::test_y - ..."
_VERBOSE_FAILED = re.compile(r"^(?P<node>\S+::\S+)\s+(FAILED|ERROR)\b")
_SUMMARY_FAILED = re.compile(r"^(FAILED|ERROR)\s+(?P<node>\S+::\S+)")


def parse_failures(output: str) -> List[str]:
    """
    Имена упавших тестов из вывода pytest -v, в порядке появления, без дублей.
    """
    failures: List[str] = []
    for line in output.splitlines():
        line = line.strip()
        match = _VERBOSE_FAILED.match(line) or _SUMMARY_FAILED.match(line)
        if match and match.group("node") not in failures:
            failures.append(match.group("node"))
    return failures


def index_url_with_credential(index_url: str, credential: Credential) -> str:
    parts = urlsplit(index_url)
    netloc = f"{quote(credential.username, safe='')}:{quote(credential.secret(), safe='')}@{parts.hostname}"
    if parts.port:
        netloc += f":{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class VerificationRunner:
    """
    Ставит зависимости тестов и гоняет внешний набор функциональных тестов
    против запущенного сервиса.

    Адрес сервиса передаётся тестам через переменные окружения
    (по умолчанию SERVICE_HOST / SERVICE_PORT).
    """

    def __init__(
        self,
        python: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
        host_env: str = "SERVICE_HOST",
        port_env: str = "SERVICE_PORT",
        index_url: Optional[str] = None,
    ) -> None:
        self.python = python or sys.executable
        self.runner = runner or run_command
        self.host_env = host_env
        self.port_env = port_env
        self.index_url = index_url

    async def install(
        self,
        workdir: Path,
        manifest: str,
        index_credential: Optional[Credential] = None,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        python -m pip install --upgrade pip && python -m pip install -r manifest

        :raises DependencyInstallError: если манифеста нет или pip упал.
        """
        logs: List[str] = []
        if not (workdir / manifest).is_file():
            logs.append(f"Dependency manifest {workdir / manifest} not found")
            raise DependencyInstallError(manifest=manifest, logs=logs)

        env: Dict[str, str] = {}
        secrets: List[str] = []
        if self.index_url and index_credential is not None:
            # Токен индекса живёт только в окружении процесса pip
            env["PIP_INDEX_URL"] = index_url_with_credential(self.index_url, index_credential)
            secrets.append(index_credential.secret())
            secrets.append(quote(index_credential.secret(), safe=""))
        elif self.index_url:
            env["PIP_INDEX_URL"] = self.index_url

        click.echo(f"Installing test dependencies from {manifest}", err=True)
        for args in (
            [self.python, "-m", "pip", "install", "--upgrade", "pip"],
            [self.python, "-m", "pip", "install", "-r", manifest],
        ):
            result = await self.runner(args, cwd=workdir, env=env or None, timeout=timeout)
            result.output = redact(result.output, secrets)
            logs.extend(describe(result))
            if not result.ok:
                raise DependencyInstallError(manifest=manifest, logs=logs)

        return logs

    async def run_suite(
        self,
        workdir: Path,
        suite: str,
        handle: ServiceHandle,
        timeout: Optional[float] = None,
    ) -> VerificationReport:
        """
        python -m pytest -v <suite> с адресом сервиса в окружении.

        :raises VerificationError: хотя бы один тест упал или набор не стартовал.
        """
        env = {
            self.host_env: handle.host,
            self.port_env: str(handle.port),
        }
        click.echo(f"Running {suite} against {handle.address}", err=True)
        result = await self.runner(
            [self.python, "-m", "pytest", "-v", suite],
            cwd=workdir,
            env=env,
            timeout=timeout,
        )
        logs = describe(result)
        failures = parse_failures(result.output)

        if not result.ok:
            raise VerificationError(
                suite=suite,
                failures=failures,
                logs=logs,
                exit_code=result.returncode,
            )

        return VerificationReport(
            passed=True,
            exit_code=0,
            failures=[],
            output=result.output,
        )
