import asyncio
import os
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Sequence, Union

from .models import CommandResult


PathLike = Union[str, Path]
CommandRunner = Callable[..., Awaitable[CommandResult]]

REDACTED = "<redacted>"


def redact(text: str, secrets: Iterable[str]) -> str:
    """
    Вырезает значения секретов из текста перед тем, как он попадёт в логи.
    """
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_command(
    args: Sequence[str],
    *,
    input: Optional[str] = None,
    cwd: Optional[PathLike] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> CommandResult:
    """
    Запускает процесс, ждёт завершения и возвращает объединённый вывод.

    input передаётся через stdin (так docker login получает токен, не светя его в argv).
    env дополняет, а не заменяет окружение текущего процесса.
    По истечении timeout процесс убивается, результат помечается timed_out.
    Если ожидание отменено снаружи (таймаут шага), процесс тоже убивается.
    """
    process_env = None
    if env:
        process_env = {**os.environ, **env}

    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        cwd=str(cwd) if cwd is not None else None,
        env=process_env,
    )
    data = input.encode() if input is not None else None
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(data), timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        return CommandResult(args=list(args), returncode=None, timed_out=True)
    except asyncio.CancelledError:
        # Дедлайн шага наступил раньше собственного: процесс не переживает шаг
        await _kill(proc)
        raise

    return CommandResult(
        args=list(args),
        returncode=proc.returncode,
        output=stdout.decode(errors="replace") if stdout else "",
    )
