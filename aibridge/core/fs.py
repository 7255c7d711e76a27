# aibridge/core/fs.py
"""
本地文件系统协作者：exists / read / write / copy / ensure_dir。
相对路径基于 root 解析；读写均保留原始换行符。
"""

import shutil
from pathlib import Path
from typing import Optional, Union

from .parser import is_safe_relative_path

PathLike = Union[str, Path]


class LocalFileSystem:
    def __init__(self, root: PathLike = "."):
        self.root = Path(root).resolve()

    def resolve(self, path: PathLike) -> Path:
        return self.root / path

    def relative(self, path: PathLike) -> Optional[str]:
        """
        Express ``path`` relative to root as a posix string. Absolute paths
        outside root and paths climbing above it return None.
        """
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root)
            except ValueError:
                return None
        relative = candidate.as_posix()
        return relative if is_safe_relative_path(relative) else None

    def exists(self, path: PathLike) -> bool:
        return self.resolve(path).is_file()

    def read(self, path: PathLike) -> str:
        with open(self.resolve(path), "r", encoding="utf-8", newline="") as f:
            return f.read()

    def read_optional(self, path: PathLike) -> Optional[str]:
        """Return the file content, or None when the file does not exist."""
        if not self.exists(path):
            return None
        return self.read(path)

    def write(self, path: PathLike, content: str) -> None:
        # 先编码，编码失败时不截断目标文件
        data = content.encode("utf-8")
        target = self.resolve(path)
        self.ensure_dir(target.parent)
        with open(target, "wb") as f:
            f.write(data)

    def copy(self, src: PathLike, dst: PathLike) -> None:
        target = self.resolve(dst)
        self.ensure_dir(target.parent)
        shutil.copyfile(self.resolve(src), target)

    def ensure_dir(self, path: PathLike) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)
