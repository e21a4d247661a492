import re
from typing import List, Optional, Sequence

import click

from push2verify.models import Credential, ImageReference
from push2verify.services.docker_module import (
    AuthError,
    DockerCli,
    PublishError,
    authenticate,
    describe,
)


# Признаки того, что реестр отверг push из-за прав, а не из-за транспорта
_AUTH_FAILURE = re.compile(
    r"unauthorized|authentication required|access.*denied|denied: ",
    re.IGNORECASE,
)


class RegistryPublisher:
    """
    Логинится в реестр и публикует образ под всеми переданными ссылками.

    Публикация перезаписывающая: после push тег указывает на новый контент,
    прежний образ под этим тегом больше не достижим.
    """

    def __init__(self, docker: DockerCli) -> None:
        self.docker = docker

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

    async def publish(
        self,
        credential: Credential,
        references: Sequence[ImageReference],
        timeout: Optional[float] = None,
    ) -> List[str]:
        """
        :raises AuthError: при отказе в логине или в push по правам.
        :raises PublishError: при ошибке транспорта, квоте, кривом теге.
        """
        if not references:
            raise PublishError(image="<none>", logs=["Nothing to publish: no image references"])

        logs: List[str] = []
        for registry in sorted({reference.registry for reference in references}):
            logs.extend(await self.login(credential, registry, timeout=timeout))

        for reference in references:
            click.echo(f"Pushing {reference.ref}", err=True)
            result = await self.docker.push(reference, timeout=timeout)
            push_logs = describe(result)
            logs.extend(push_logs)
            if not result.ok:
                if _AUTH_FAILURE.search(result.output):
                    raise AuthError(registry=reference.registry, logs=logs)
                raise PublishError(image=reference.ref, logs=logs)
            logs.append(f"Published {reference.ref}")

        return logs
