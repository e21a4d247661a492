from pathlib import Path
import os
from tempfile import gettempdir

"""
Базовая настройка прогона: рабочий каталог, реестр, порты и таймауты.

По умолчанию временные checkout'ы складываются в /tmp/push2verify (или аналог на Windows).
Любое значение можно переопределить переменной окружения PUSH2VERIFY_* или опцией CLI.
"""


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


BASE_TEMP_DIR = Path(
    os.getenv("PUSH2VERIFY_WORKDIR", gettempdir())
) / "push2verify"

# Push в эти ветки запускает пайплайн, остальные игнорируются
TRUNK_BRANCHES = [
    branch.strip()
    for branch in os.getenv("PUSH2VERIFY_TRUNK_BRANCHES", "master").split(",")
    if branch.strip()
]

REGISTRY = os.getenv("PUSH2VERIFY_REGISTRY", "docker.pkg.github.com")
REPOSITORY = os.getenv("PUSH2VERIFY_REPOSITORY", "alex-dukhno/database/database")
DEFAULT_TAG = os.getenv("PUSH2VERIFY_TAG", "latest")

DOCKERFILE = os.getenv("PUSH2VERIFY_DOCKERFILE", "Dockerfile")
DOCKER_CONTEXT = os.getenv("PUSH2VERIFY_DOCKER_CONTEXT", ".")

SERVICE_HOST = os.getenv("PUSH2VERIFY_SERVICE_HOST", "127.0.0.1")
HOST_PORT = _int_env("PUSH2VERIFY_HOST_PORT", 5432)
CONTAINER_PORT = _int_env("PUSH2VERIFY_CONTAINER_PORT", 5432)

# Имена переменных окружения, через которые тесты узнают адрес сервиса
SERVICE_HOST_ENV = os.getenv("PUSH2VERIFY_SERVICE_HOST_ENV", "SERVICE_HOST")
SERVICE_PORT_ENV = os.getenv("PUSH2VERIFY_SERVICE_PORT_ENV", "SERVICE_PORT")

REQUIREMENTS_FILE = os.getenv("PUSH2VERIFY_REQUIREMENTS", "tests/functional/requirements.txt")
TEST_SUITE = os.getenv("PUSH2VERIFY_TEST_SUITE", "tests/functional")

# Таймауты шагов, секунды
STEP_TIMEOUTS = {
    "checkout": _float_env("PUSH2VERIFY_CHECKOUT_TIMEOUT", 300),
    "build": _float_env("PUSH2VERIFY_BUILD_TIMEOUT", 1800),
    "login": _float_env("PUSH2VERIFY_LOGIN_TIMEOUT", 60),
    "push": _float_env("PUSH2VERIFY_PUSH_TIMEOUT", 900),
    "pull": _float_env("PUSH2VERIFY_PULL_TIMEOUT", 600),
    "run": _float_env("PUSH2VERIFY_RUN_TIMEOUT", 180),
    "install": _float_env("PUSH2VERIFY_INSTALL_TIMEOUT", 600),
    "test": _float_env("PUSH2VERIFY_TEST_TIMEOUT", 1800),
}

READINESS_TIMEOUT = _float_env("PUSH2VERIFY_READINESS_TIMEOUT", 60)
READINESS_INTERVAL = _float_env("PUSH2VERIFY_READINESS_INTERVAL", 1.0)
