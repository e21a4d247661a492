from typing import List, Optional

import click

from push2verify.models import Credential, ImageReference, ServiceHandle
from push2verify.services.docker_module import (
    DockerCli,
    LaunchError,
    PullError,
    ReadinessTimeoutError,
    authenticate,
    describe,
)

from .readiness import wait_for_port


class ServiceLauncher:
    """
    Поднимает опубликованный образ как отдельный сетевой процесс.

    - login(credential, registry): логин в реестр перед pull;
    - pull(reference): скачивание образа по тегу;
    - launch(reference): docker run -d с пробросом фиксированного порта;
    - wait_until_ready(handle): барьер готовности (порт принимает соединения);
    - stop(container): удаление контейнера при завершении прогона.

    Хост-порт принадлежит запущенному контейнеру до stop().
    """

    def __init__(
        self,
        docker: DockerCli,
        host: str = "127.0.0.1",
        host_port: int = 5432,
        container_port: int = 5432,
        readiness_timeout: float = 60.0,
        readiness_interval: float = 1.0,
    ) -> None:
        self.docker = docker
        self.host = host
        self.host_port = host_port
        self.container_port = container_port
        self.readiness_timeout = readiness_timeout
        self.readiness_interval = readiness_interval

    async def login(
        self,
        credential: Credential,
        registry: str,
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        :raises AuthError: если реестр отверг учётные данные.
        """
        return await authenticate(self.docker, credential, registry, timeout=timeout)

    async def pull(self, reference: ImageReference, timeout: Optional[float] = None) -> List[str]:
        """
        :raises PullError: тег не резолвится или реестр недоступен.
        """
        click.echo(f"Pulling {reference.ref}", err=True)
        result = await self.docker.pull(reference, timeout=timeout)
        logs = describe(result)
        if not result.ok:
            raise PullError(image=reference.ref, logs=logs)
        return logs

    async def launch(
        self,
        reference: ImageReference,
        name: str,
        timeout: Optional[float] = None,
    ) -> tuple[ServiceHandle, List[str]]:
        """
        Возвращается сразу, как только docker принял команду запуска;
        готовность не проверяет, для этого есть wait_until_ready().

        :raises LaunchError: образ не запускается (битый образ, порт занят).
        """
        click.echo(
            f"Starting {reference.ref} as {name} on {self.host}:{self.host_port}",
            err=True,
        )
        result = await self.docker.run_detached(
            reference,
            name=name,
            host_port=self.host_port,
            container_port=self.container_port,
            timeout=timeout,
        )
        logs = describe(result)
        lines = result.output_lines()
        if not result.ok or not lines:
            raise LaunchError(image=reference.ref, logs=logs)

        handle = ServiceHandle(
            container_id=lines[-1].strip(),
            name=name,
            image=reference,
            host=self.host,
            port=self.host_port,
        )
        logs.append(f"Container {handle.container_id[:12]} started")
        return handle, logs

    async def wait_until_ready(self, handle: ServiceHandle) -> List[str]:
        """
        :raises ReadinessTimeoutError: сервис не принял соединение за readiness_timeout
            или контейнер завершился раньше.
        """
        click.echo(f"Waiting for {handle.address} to accept connections", err=True)

        async def alive() -> bool:
            return await self.docker.is_running(handle.container_id)

        attempts = await wait_for_port(
            handle.host,
            handle.port,
            timeout=self.readiness_timeout,
            interval=self.readiness_interval,
            alive=alive,
        )
        if attempts:
            return [f"Service is ready on {handle.address} after {attempts} probe(s)"]

        logs = [f"Service did not become ready on {handle.address}"]
        container_output = await self.docker.container_logs(handle.container_id)
        logs.extend(describe(container_output))
        raise ReadinessTimeoutError(
            image=handle.image.ref,
            address=handle.address,
            timeout=self.readiness_timeout,
            logs=logs,
        )

    async def stop(self, container: str, timeout: Optional[float] = None) -> tuple[bool, List[str]]:
        """
        container: id или имя контейнера.
        Возвращает (контейнера больше нет, logs). Не бросает: вызывается при завершении прогона.
        """
        result = await self.docker.remove(container, timeout=timeout)
        logs = describe(result)
        if result.ok:
            logs.append(f"Container {container} removed")
            return True, logs
        if "No such container" in result.output:
            logs.append(f"Container {container} was never created")
            return True, logs
        return False, logs
