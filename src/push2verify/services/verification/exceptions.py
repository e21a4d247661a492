from typing import List, Optional

from exception import StepError


class VerificationExceptions(StepError):
    """
    Базовое исключение прогона функциональных тестов.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when run functional tests",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)


class DependencyInstallError(VerificationExceptions):
    def __init__(self, manifest: str, logs: Optional[List[str]] = None, *args) -> None:
        description = f"Error to install test dependencies from {manifest}"
        super().__init__(*args, description=description, logs=logs)
        self.manifest = manifest


class VerificationError(VerificationExceptions):
    """
    Набор тестов упал или не смог стартовать.
    failures: node id упавших тестов, как их напечатал pytest.
    """

    def __init__(
        self,
        suite: str,
        failures: Optional[List[str]] = None,
        logs: Optional[List[str]] = None,
        exit_code: Optional[int] = None,
        *args,
    ) -> None:
        self.failures: List[str] = failures or []
        if self.failures:
            description = (
                f"{len(self.failures)} functional test(s) failed in {suite}: "
                f"{', '.join(self.failures)}"
            )
        else:
            description = f"Functional test suite {suite} failed (exit code {exit_code})"
        super().__init__(*args, description=description, logs=logs)
        self.suite = suite
        self.exit_code = exit_code
