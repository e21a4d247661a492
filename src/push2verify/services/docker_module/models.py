from dataclasses import dataclass
from typing import List, Optional


@dataclass
class CommandResult:
    """
    Результат запуска внешней команды (docker, python -m pip, pytest).

    args: argv без секретов;
    returncode: код возврата, None если процесс убит по таймауту;
    output: объединённый stdout+stderr;
    timed_out: процесс не уложился в таймаут и был убит.
    """

    args: List[str]
    returncode: Optional[int]
    output: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(self.args)

    def output_lines(self) -> List[str]:
        return [line for line in self.output.splitlines() if line.strip()]
