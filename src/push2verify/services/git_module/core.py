from git import (
    Repo as GitRepo,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

import asyncio
from pathlib import Path
from typing import List, Optional
from push2verify.config import BASE_TEMP_DIR

from .models import LocalRepo
from .utils import ensure_base_temp_dir, PathLike
from .exceptions import GitCloneError, GitLocalPathError

import shutil
import tempfile


class SourceCheckout:
    """
    Фасад для получения дерева исходников в двух режимах:

    - clone(repo, branch, ref) : клонирование по URL (GitPython), опционально на конкретный коммит;
    - from_existing_path(path) : использование уже существующей директории.

    Оба метода возвращают LocalRepo, внутри которого есть:
    - root_dir : корень (временный или реальный);
    - repo_path : путь к дереву исходников;
    - commit : sha HEAD, если это git-репозиторий;
    - logs : логи шагов;
    - is_temporary : флаг временности root_dir.
    """

    def __init__(self, default_branch: str = "master", workdir: Optional[Path] = None) -> None:
        self.default_branch = default_branch
        self.workdir = workdir or BASE_TEMP_DIR

    async def checkout(self, source: str, branch: str | None = None, ref: str | None = None) -> LocalRepo:
        """
        Существующая директория используется как есть, если в ней нужный коммит;
        иначе она клонируется во временную папку и переключается на ref.
        Всё остальное клонируется.

        :raises GitLocalPathError: ref задан, а директория не git-репозиторий.
        """
        if not Path(source).is_dir():
            return await self.clone(source, branch, ref)

        local = await self.from_existing_path(source)
        if ref is None or (local.commit and local.commit.startswith(ref)):
            return local
        if local.commit is None:
            local.logs.append(f"Commit {ref} requested, but the commit of the directory is unknown.")
            raise GitLocalPathError(path=str(source), logs=local.logs)

        local.logs.append(f"Directory is at {local.commit}, not at {ref}.")
        cloned = await asyncio.to_thread(self._clone, str(Path(source).resolve()), None, ref)
        cloned.logs[:0] = local.logs
        return cloned

    async def clone(self, repo: str, branch: str | None = None, ref: str | None = None) -> LocalRepo:
        """
        Клонирует указанный git-репозиторий во временную папку (через GitPython).

        :param repo: URL репозитория (https/ssh или путь до bare-репо).
        :param branch: Ветка, которую нужно клонировать.
        :param ref: Коммит, на который нужно переключиться после клонирования.
        :raises GitCloneError: при любых ошибках клонирования.
        """
        if branch is None:
            branch = self.default_branch
        return await asyncio.to_thread(self._clone, repo, branch, ref)

    def _clone(self, repo: str, branch: str | None, ref: str | None) -> LocalRepo:
        logs: List[str] = []

        base_temp = ensure_base_temp_dir(self.workdir)
        temp_root = Path(
            tempfile.mkdtemp(prefix="checkout_", dir=base_temp)
        )
        repo_dir = temp_root / "repo"

        logs.append(f"Created temporary directory {temp_root}")
        if branch:
            logs.append(f"Cloning {repo!r} (branch {branch}) into {repo_dir}")
        else:
            logs.append(f"Cloning {repo!r} into {repo_dir}")

        repo_obj: GitRepo | None = None
        try:
            # Для конкретного коммита нужна история, иначе хватает depth=1
            depth = None if ref else 1
            # Без ветки клонируется ветка по умолчанию источника
            extra = {"branch": branch} if branch else {}
            repo_obj = GitRepo.clone_from(repo, repo_dir, depth=depth, **extra)
            if ref:
                repo_obj.git.checkout(ref)
                logs.append(f"Checked out {ref}")
            commit = repo_obj.head.commit.hexsha
            logs.append(f"Source tree at {commit} ready in {repo_dir}")
        except GitCommandError as e:
            logs.append("GitPython: clone/checkout failed.")
            logs.append(str(e))
            shutil.rmtree(temp_root, ignore_errors=True)
            raise GitCloneError(repository=repo, branch=branch or "HEAD", logs=logs) from e
        except Exception:
            # не оставляем мусор во временной папке
            shutil.rmtree(temp_root, ignore_errors=True)
            raise
        finally:
            # Явно закрываем repo_obj, чтобы на Windows не оставались залоченные файлы
            if repo_obj is not None:
                repo_obj.close()

        return LocalRepo(
            root_dir=temp_root,
            repo_path=repo_dir,
            logs=logs,
            commit=commit,
            is_temporary=True,
        )

    async def from_existing_path(self, path: PathLike) -> LocalRepo:
        """
        Использует уже существующую директорию как дерево исходников.
        Ничего не копирует и не клонирует, просто валидирует путь и собирает логи.

        :raises GitLocalPathError: если путь не существует или не является директорией.
        """
        logs: List[str] = []

        repo_path = Path(path)
        logs.append(f"Using existing source tree {repo_path}")

        if not repo_path.exists():
            logs.append("Path does not exist.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)
        if not repo_path.is_dir():
            logs.append("Path is not a directory.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        commit = None
        if (repo_path / ".git").exists():
            try:
                repo_obj = GitRepo(repo_path)
                try:
                    commit = repo_obj.head.commit.hexsha
                    logs.append(f"Git repository at {commit}")
                finally:
                    repo_obj.close()
            except (InvalidGitRepositoryError, NoSuchPathError, ValueError):
                # ValueError: репозиторий без единого коммита
                logs.append("Found .git but could not read HEAD, using it as a plain directory.")
        else:
            logs.append("No .git directory, commit is unknown.")

        # is_temporary = False, поэтому cleanup() не будет удалять реальный проект.
        return LocalRepo(
            root_dir=repo_path,
            repo_path=repo_path,
            logs=logs,
            commit=commit,
            is_temporary=False,
        )
