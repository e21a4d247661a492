from pathlib import Path
from typing import List, Optional, Sequence

import click

from push2verify.models import ImageReference
from push2verify.services.docker_module import BuildError, DockerCli, describe, image_id


class ImageBuilder:
    """
    Собирает образ сервиса из дерева исходников через docker build.
    Повторов нет: ошибка сборки фатальна для прогона.
    """

    def __init__(self, docker: DockerCli, dockerfile: str = "Dockerfile", context: str = ".") -> None:
        self.docker = docker
        self.dockerfile = dockerfile
        self.context = context

    async def build(
        self,
        source: Path,
        references: Sequence[ImageReference],
        timeout: Optional[float] = None,
    ) -> tuple[Optional[str], List[str]]:
        """
        Возвращает (id образа, logs).

        :raises BuildError: если docker build завершился ненулевым кодом.
        """
        context = source / self.context
        dockerfile = source / self.dockerfile
        click.echo(f"Building {', '.join(r.ref for r in references)} from {context}", err=True)

        result = await self.docker.build(context, dockerfile, references, timeout=timeout)
        logs = describe(result)
        if not result.ok:
            raise BuildError(context=str(context), logs=logs)

        built = image_id(result)
        logs.append(f"Built image {built or '<unknown id>'}")
        return built, logs
