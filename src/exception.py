from typing import List, Optional


class CLIException(Exception):
    def __init__(self, *args, description: str = "Something happend..."):
        super().__init__(description, *args)
        self.description = description


class StepError(CLIException):
    """
    Базовая ошибка шага пайплайна.

    Хранит логи (сырой вывод инструмента), которые показываются тому,
    кто запустил прогон, без повторного запуска.
    """

    def __init__(
        self,
        *args,
        description: str = "Pipeline step failed",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class StepTimeoutError(StepError):
    def __init__(self, step: str, timeout: float, logs: Optional[List[str]] = None) -> None:
        description = f"Step {step} did not finish in {timeout:g}s"
        super().__init__(description=description, logs=logs)
        self.step = step
        self.timeout = timeout


class PipelineDefinitionError(CLIException):
    """
    Некорректное описание пайплайна: дубли стадий, неизвестные
    предшественники, циклы, шаги без действия.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description=description)
