from pydantic import BaseModel, ConfigDict, Field, SecretStr
from typing import Dict, List, Literal, Optional

from model import PipelineRun

from . import config


class Trigger(BaseModel):
    """
    Push-событие, запускающее прогон.
    source: URL репозитория или путь до уже существующей директории с исходниками.
    """
    branch: str
    source: str
    ref: Optional[str] = None
    actor: Optional[str] = None


class ImageReference(BaseModel):
    """
    registry + repository + tag дают однозначную ссылку на опубликованный образ.
    Тег latest переиспользуется каждым прогоном, т.е. контент под тегом
    перезаписывается.
    """
    model_config = ConfigDict(frozen=True)

    registry: str
    repository: str
    tag: str = "latest"

    @property
    def ref(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"

    def with_tag(self, tag: str) -> "ImageReference":
        return self.model_copy(update={"tag": tag})

    @classmethod
    def parse(cls, value: str) -> "ImageReference":
        """
        'docker.pkg.github.com/owner/repo/image:tag' -> ImageReference.
        Без тега подставляется latest.
        """
        if "/" not in value:
            raise ValueError(f"Image reference {value!r} has no registry host")
        registry, _, rest = value.partition("/")
        repository, sep, tag = rest.rpartition(":")
        if not sep or "/" in tag:
            repository, tag = rest, "latest"
        if not repository:
            raise ValueError(f"Image reference {value!r} has no repository path")
        return cls(registry=registry, repository=repository, tag=tag)

    def __str__(self) -> str:
        return self.ref


class Credential(BaseModel):
    """
    Непрозрачный токен для одной внешней системы (реестр или индекс пакетов).
    Живёт только в рамках прогона, SecretStr не даёт ему попасть в логи.
    """
    model_config = ConfigDict(frozen=True)

    username: str
    token: SecretStr
    scope: Literal["registry", "package-index"] = "registry"

    def secret(self) -> str:
        return self.token.get_secret_value()


class ServiceHandle(BaseModel):
    container_id: str
    name: str
    image: ImageReference
    host: str
    port: int

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class VerificationReport(BaseModel):
    passed: bool
    exit_code: int
    failures: List[str] = Field(default_factory=list)
    output: str = ""


class PipelineOptions(BaseModel):
    """
    Параметры прогона; значения по умолчанию берутся из push2verify.config.
    """
    registry: str = config.REGISTRY
    repository: str = config.REPOSITORY
    tag: str = config.DEFAULT_TAG
    # Дополнительно публиковать образ под коротким sha коммита
    commit_tag: bool = False
    trunk_branches: List[str] = Field(default_factory=lambda: list(config.TRUNK_BRANCHES))
    dockerfile: str = config.DOCKERFILE
    docker_context: str = config.DOCKER_CONTEXT
    service_host: str = config.SERVICE_HOST
    host_port: int = config.HOST_PORT
    container_port: int = config.CONTAINER_PORT
    readiness_timeout: float = config.READINESS_TIMEOUT
    readiness_interval: float = config.READINESS_INTERVAL
    requirements: str = config.REQUIREMENTS_FILE
    test_suite: str = config.TEST_SUITE
    service_host_env: str = config.SERVICE_HOST_ENV
    service_port_env: str = config.SERVICE_PORT_ENV
    python: Optional[str] = None
    index_url: Optional[str] = None
    timeouts: Dict[str, float] = Field(default_factory=lambda: dict(config.STEP_TIMEOUTS))

    def image(self, tag: Optional[str] = None) -> ImageReference:
        reference = ImageReference(registry=self.registry, repository=self.repository, tag=self.tag)
        return reference.with_tag(tag) if tag else reference


class RunSummary(BaseModel):
    stages_count: int
    steps_count: int
    stages: List[str]
    step_names: List[str]
    # Короткое текстовое описание для CLI
    description: str


class RunResponse(BaseModel):
    status: Literal["ok", "error"]
    run: PipelineRun
    summary: Optional[RunSummary] = None
    logs: List[str] = []
    warnings: List[str] = []
    failed_step: Optional[str] = None
    diagnostics: Optional[str] = None
    report: Optional[VerificationReport] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "ok" else 1
