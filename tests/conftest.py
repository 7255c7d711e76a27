# tests/conftest.py
"""
AI Bridge 测试配置和共享 fixtures
"""

import os
import tempfile
from pathlib import Path

import pytest

from aibridge.core.config import DEFAULT_CONFIG
from aibridge.core.fs import LocalFileSystem


@pytest.fixture(scope="function")
def isolated_filesystem():
    """
    提供一个隔离的临时文件系统，并切换当前工作目录。
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir).resolve()
        original_cwd = os.getcwd()
        os.chdir(temp_path)
        yield temp_path
        os.chdir(original_cwd)


@pytest.fixture
def project(isolated_filesystem):
    """一个带有少量源文件的示例项目"""
    src = isolated_filesystem / "project" / "src"
    src.mkdir(parents=True)
    (src / "a.ts").write_text("export const a = 1;\n", encoding="utf-8")
    (src / "b.ts").write_text("line1\nline2\nline3", encoding="utf-8")
    return isolated_filesystem / "project"


@pytest.fixture
def workspace(project):
    return LocalFileSystem(project)


@pytest.fixture
def config_data(isolated_filesystem):
    data = DEFAULT_CONFIG.copy()
    data["staging_root"] = str(isolated_filesystem / "staging")
    return data


@pytest.fixture
def runner():
    """提供一个 Click CliRunner 实例用于测试 CLI 命令"""
    from click.testing import CliRunner
    return CliRunner()
