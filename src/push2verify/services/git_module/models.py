import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from .utils import on_rm_error

@dataclass
class LocalRepo:
    """
    Дерево исходников, подготовленное для шага прогона.

    root_dir: корневая папка, для клонов это временная директория.
    repo_path: путь к самому дереву исходников.
    logs: текстовые логи шагов подготовки.
    commit: sha HEAD, если известен.
    is_temporary: если True, cleanup() удалит root_dir; иначе оставит.
    """

    root_dir: Path
    repo_path: Path
    logs: List[str]
    commit: Optional[str] = None
    is_temporary: bool = True

    @property
    def short_commit(self) -> Optional[str]:
        return self.commit[:12] if self.commit else None

    def cleanup(self) -> None:
        """
        Удаляет временную папку, если is_temporary = True.
        Для существующих локальных путей ничего не делает.
        """
        if self.is_temporary and self.root_dir.exists():
            if sys.version_info >= (3, 12):
                shutil.rmtree(self.root_dir, onexc=on_rm_error)
            else:
                shutil.rmtree(self.root_dir, onerror=on_rm_error)
