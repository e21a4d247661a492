from typing import List, Optional, Sequence

from push2verify.models import Credential, ImageReference

from .exceptions import AuthError, DockerNotFoundError
from .models import CommandResult
from .utils import CommandRunner, PathLike, redact, run_command


class DockerCli:
    """
    Тонкая обёртка над docker CLI.

    Только собирает argv и запускает процесс; коды возврата интерпретируют
    сервисы (builder/registry/launcher), которые знают, какую ошибку поднять.
    runner подменяется в тестах.
    """

    def __init__(self, binary: str = "docker", runner: Optional[CommandRunner] = None) -> None:
        self.binary = binary
        self.runner = runner or run_command

    async def _docker(
        self,
        args: Sequence[str],
        *,
        input: Optional[str] = None,
        cwd: Optional[PathLike] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        try:
            return await self.runner(
                [self.binary, *args],
                input=input,
                cwd=cwd,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise DockerNotFoundError(self.binary) from e

    async def build(
        self,
        context: PathLike,
        dockerfile: PathLike,
        references: Sequence[ImageReference],
        timeout: Optional[float] = None,
    ) -> CommandResult:
        args: List[str] = ["build", "-f", str(dockerfile)]
        for reference in references:
            args.extend(["-t", reference.ref])
        args.append(str(context))
        return await self._docker(args, timeout=timeout)

    async def login(
        self,
        registry: str,
        credential: Credential,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        # Токен уходит только через stdin
        result = await self._docker(
            ["login", registry, "-u", credential.username, "--password-stdin"],
            input=credential.secret(),
            timeout=timeout,
        )
        result.output = redact(result.output, [credential.secret()])
        return result

    async def push(self, reference: ImageReference, timeout: Optional[float] = None) -> CommandResult:
        return await self._docker(["push", reference.ref], timeout=timeout)

    async def pull(self, reference: ImageReference, timeout: Optional[float] = None) -> CommandResult:
        return await self._docker(["pull", reference.ref], timeout=timeout)

    async def run_detached(
        self,
        reference: ImageReference,
        name: str,
        host_port: int,
        container_port: int,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        return await self._docker(
            [
                "run",
                "-d",
                "--name", name,
                "-p", f"{host_port}:{container_port}",
                reference.ref,
            ],
            timeout=timeout,
        )

    async def remove(self, container: str, timeout: Optional[float] = None) -> CommandResult:
        return await self._docker(["rm", "-f", container], timeout=timeout)

    async def container_logs(self, container: str, tail: int = 50, timeout: Optional[float] = None) -> CommandResult:
        return await self._docker(["logs", "--tail", str(tail), container], timeout=timeout)

    async def is_running(self, container: str, timeout: Optional[float] = None) -> bool:
        result = await self._docker(
            ["inspect", "-f", "{{.State.Running}}", container],
            timeout=timeout,
        )
        return result.ok and result.output.strip() == "true"


def describe(result: CommandResult) -> List[str]:
    """
    Логи для исключения/шага: сама команда + её вывод.
    """
    logs = [f"$ {result.command}"]
    logs.extend(result.output_lines())
    if result.timed_out:
        logs.append("Command timed out and was killed.")
    elif result.returncode:
        logs.append(f"Exit code {result.returncode}")
    return logs


def image_id(result: CommandResult) -> Optional[str]:
    """
    Достаёт id собранного образа из вывода docker build (classic и buildkit).
    """
    for line in reversed(result.output_lines()):
        line = line.strip()
        if line.startswith("Successfully built "):
            return line.split()[-1]
        if "writing image sha256:" in line:
            return "sha256:" + line.split("sha256:", 1)[1].split()[0]
    return None


async def authenticate(
    docker: DockerCli,
    credential: Credential,
    registry: str,
    timeout: Optional[float] = None,
) -> List[str]:
    """
    docker login с проверкой результата.

    :raises AuthError: если реестр отверг учётные данные.
    """
    result = await docker.login(registry, credential, timeout=timeout)
    logs = describe(result)
    if not result.ok:
        raise AuthError(registry=registry, logs=logs)
    logs.append(f"Logged in to {registry} as {credential.username}")
    return logs
