# aibridge/core/config.py
"""
配置加载：.aibridge/config.yaml
"""

import tempfile
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .errors import ConfigError
from .prompt import DIFF_FORMATS

STATE_DIR = Path(".aibridge")
CONFIG_FILE = STATE_DIR / "config.yaml"

DEFAULT_CONFIG = {
    "staging_root": str(Path(tempfile.gettempdir()) / "ai-bridge"),
    "diff_format": "search_replace",
    "allow_unsafe_paths": False,
    "review_round": False,
}


def validate_config(data: Dict[str, Any]) -> None:
    """校验配置字段类型与取值，失败抛出 ConfigError"""
    if not isinstance(data.get("staging_root"), str) or not data["staging_root"].strip():
        raise ConfigError("staging_root must be a non-empty string.")
    if data.get("diff_format") not in DIFF_FORMATS:
        raise ConfigError(f"diff_format must be one of {sorted(DIFF_FORMATS)}, got {data.get('diff_format')!r}.")
    for key in ("allow_unsafe_paths", "review_round"):
        if not isinstance(data.get(key), bool):
            raise ConfigError(f"{key} must be true or false.")


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    读取配置并与默认值合并。文件不存在时返回默认配置。
    """
    config_file = config_file or CONFIG_FILE
    result = DEFAULT_CONFIG.copy()
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML syntax error in {config_file}: {e}")
        if data is not None:
            if not isinstance(data, dict):
                raise ConfigError(f"{config_file} must contain a YAML mapping, got {type(data).__name__}.")
            unknown = sorted(set(data) - set(DEFAULT_CONFIG))
            if unknown:
                raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
            result.update({k: v for k, v in data.items() if v is not None})
    validate_config(result)
    return result


def render_default_config() -> str:
    return yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False, allow_unicode=True)
