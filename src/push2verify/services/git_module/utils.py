import os
import stat
from pathlib import Path
from typing import Union


PathLike = Union[str, Path]

def on_rm_error(func, path, exc):
    """
    Обработчик ошибок для shutil.rmtree (onexc, до 3.12 onerror):
    - снимает флаг read-only (частый кейс для .git/objects/pack на Windows),
    - повторно вызывает функцию удаления,
    - если снова не получилось, оставляет файл (cleanup работает best-effort).
    """
    try:
        os.chmod(path, stat.S_IWRITE)
        func(path)
    except OSError:
        pass

def ensure_base_temp_dir(path: PathLike) -> Path:
    """
    Гарантирует, что рабочий каталог существует, и возвращает его как Path.
    """
    base = Path(path)
    base.mkdir(parents=True, exist_ok=True)
    return base
