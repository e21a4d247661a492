from typing import List, Optional

from exception import StepError


class DockerExceptions(StepError):
    """
    Базовое исключение для работы с docker и реестром образов.

    Дополнительно хранит логи, то есть сырой вывод docker-команды.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when work with Docker",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)


class DockerNotFoundError(DockerExceptions):
    def __init__(self, binary: str = "docker") -> None:
        super().__init__(description=f"Executable {binary!r} not found in PATH")
        self.binary = binary


class BuildError(DockerExceptions):
    """
    Сборка образа завершилась ненулевым кодом.
    """

    def __init__(self, context: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Error to build image from context {context}"
        super().__init__(*args, description=description, logs=logs)
        self.context = context


class AuthError(DockerExceptions):
    """
    Реестр отклонил учётные данные.
    """

    def __init__(self, registry: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Registry {registry} rejected the credential"
        super().__init__(*args, description=description, logs=logs)
        self.registry = registry


class PublishError(DockerExceptions):
    def __init__(self, image: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Error to push image {image}"
        super().__init__(*args, description=description, logs=logs)
        self.image = image


class PullError(DockerExceptions):
    def __init__(self, image: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Error to pull image {image}"
        super().__init__(*args, description=description, logs=logs)
        self.image = image


class LaunchError(DockerExceptions):
    """
    Образ не удалось запустить (битый образ, порт занят и т.п.).
    """

    def __init__(
        self,
        image: str,
        logs: Optional[List[str]] = None,
        *args,
        description: Optional[str] = None,
    ) -> None:
        description = description or f"Error to launch image {image}"
        super().__init__(*args, description=description, logs=logs)
        self.image = image


class ReadinessTimeoutError(LaunchError):
    """
    Сервис запущен, но не начал принимать соединения за отведённое время.
    """

    def __init__(
        self,
        image: str,
        address: str,
        timeout: float,
        logs: Optional[List[str]] = None,
    ) -> None:
        description = f"Service {image} did not accept connections on {address} within {timeout:g}s"
        super().__init__(image, logs, description=description)
        self.address = address
        self.timeout = timeout
