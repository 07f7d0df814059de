"""
服务配置加载

配置来源（后者覆盖前者）：默认值 -> config.yaml -> 环境变量。
启动时解析一次，之后不可变。
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = (5.0, 20.0)


class ConfigError(Exception):
    """配置文件无法读取或格式错误"""


@dataclass(frozen=True)
class ServerConfig:
    """服务配置"""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    request_timeout: Tuple[float, float] = DEFAULT_TIMEOUT  # (connect, read)
    debug_http: bool = False
    login_path: str = "/login"
    subjects_path: str = "/subjects"
    log_level: str = "INFO"


def load_config_file(config_file: str = DEFAULT_CONFIG_FILE) -> dict:
    """加载 YAML 配置文件，文件不存在时返回空字典"""
    config_path = Path(config_file)

    if not config_path.exists():
        logger.info(f"{'[配置]':<15}: 配置文件 {config_file} 不存在，使用默认配置")
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"读取配置文件失败: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"配置文件 {config_file} 顶层必须是映射")
    return config


def parse_request_timeout(value: Any) -> Tuple[float, float]:
    """解析超时配置

    - [connect, read] 两个数字
    - 单个数字表示 read timeout；connect timeout 仍取 5s
    """
    try:
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (DEFAULT_TIMEOUT[0], float(value))
    except (TypeError, ValueError):
        pass
    if value is not None:
        logger.warning(f"{'[配置]':<15}: request_timeout={value!r} 无效，使用默认值 {DEFAULT_TIMEOUT}")
    return DEFAULT_TIMEOUT


def parse_port(value: Any, default: int) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        logger.warning(f"{'[配置]':<15}: 端口 {value!r} 无效，使用 {default}")
        return default
    if not 0 < port < 65536:
        logger.warning(f"{'[配置]':<15}: 端口 {port} 超出范围，使用 {default}")
        return default
    return port


def build_config(file_config: Optional[Mapping[str, Any]] = None,
                 environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """合并配置文件与环境变量"""
    file_config = dict(file_config or {})
    environ = os.environ if environ is None else environ

    port = DEFAULT_PORT
    if file_config.get("port") is not None:
        port = parse_port(file_config["port"], DEFAULT_PORT)
    if environ.get("PORT"):
        port = parse_port(environ["PORT"], port)

    return ServerConfig(
        host=environ.get("HOST") or str(file_config.get("host", ServerConfig.host)),
        port=port,
        request_timeout=parse_request_timeout(file_config.get("request_timeout")),
        debug_http=bool(file_config.get("debug_http", False)),
        login_path=str(file_config.get("login_path", ServerConfig.login_path)),
        subjects_path=str(file_config.get("subjects_path", ServerConfig.subjects_path)),
        log_level=(environ.get("LOG_LEVEL") or str(file_config.get("log_level", "INFO"))).upper(),
    )


def load_config(config_file: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """加载完整配置，配置文件路径可由 GRADE_CONFIG 指定"""
    environ = os.environ if environ is None else environ
    config_file = config_file or environ.get("GRADE_CONFIG") or DEFAULT_CONFIG_FILE
    return build_config(load_config_file(config_file), environ)
