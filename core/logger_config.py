"""
日志配置管理模块

读取 config/logger.yaml，并据此为对话链路（agents / core / config）与工具链路
（Tools / tool_calls）安装控制台与滚动文件处理器。

使用示例:
    from core.logger_config import LoggerConfig, setup_logging

    config = LoggerConfig.get_logger_config("tool")
    print(config["level"])  # "DEBUG"

    setup_logging()
"""

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.logging_context import get_turn_id

logger = logging.getLogger(__name__)

LOGGER_TYPES = ("conversation", "tool")

# 各日志器类型负责的 logger 名称前缀
LOGGER_TARGETS: Dict[str, List[str]] = {
    "conversation": ["agents", "core", "config"],
    "tool": ["Tools", "tool_calls"],
}

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(turn_id)s] %(message)s"


class LoggerConfig:
    """
    日志配置管理器

    单例模式，负责读取和解析 logger.yaml 配置文件。
    """

    _instance: Optional["LoggerConfig"] = None
    _config: Dict[str, Any] = {}
    _config_path: Path = Path(__file__).parent.parent / "config" / "logger.yaml"

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_config()
        return cls._instance

    def _load_config(self) -> None:
        """加载配置文件，失败时退回默认配置"""
        if not self._config_path.exists():
            logger.warning(f"日志配置文件不存在: {self._config_path}，使用默认配置")
            self._config = self._get_default_config()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.info(f"成功加载日志配置: {self._config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"加载日志配置失败: {e}，使用默认配置", exc_info=True)
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """获取默认配置"""
        return {
            "global": {
                "log_dir": "Logs",
                "default_format": "text",
                "default_level": "INFO",
                "enable_console": False,
                "enable_file": True,
                "max_file_size_mb": 20,
                "backup_count": 5,
            },
            "conversation": {
                "log_dir": "Logs/conversation_logs",
                "file_pattern": "conversation_{date}.log",
            },
            "tool": {
                "level": "DEBUG",
                "format": "json",
                "log_dir": "Logs/tool_logs",
                "file_pattern": "tool_{date}.log",
            },
        }

    @classmethod
    def reload_config(cls) -> None:
        """重新读取配置文件"""
        cls()._load_config()
        logger.info("日志配置已重新加载")

    @classmethod
    def get_global_config(cls) -> Dict[str, Any]:
        """
        获取全局配置

        Returns:
            Dict[str, Any]: 全局配置字典
        """
        return cls()._config.get("global", {}) or {}

    @classmethod
    def get_logger_config(cls, logger_type: str) -> Dict[str, Any]:
        """
        获取指定类型的日志器配置（已合并全局默认值）

        Args:
            logger_type: 日志器类型 ("conversation" | "tool")

        Returns:
            Dict[str, Any]: 日志器配置字典

        Raises:
            ValueError: 如果 logger_type 无效
        """
        if logger_type not in LOGGER_TYPES:
            raise ValueError(f"无效的日志器类型: {logger_type}")

        logger_config = cls()._config.get(logger_type, {}) or {}
        global_config = cls.get_global_config()

        return {
            "enabled": logger_config.get("enabled", True),
            "level": logger_config.get("level", global_config.get("default_level", "INFO")),
            "format": logger_config.get("format", global_config.get("default_format", "text")),
            "log_dir": logger_config.get("log_dir", global_config.get("log_dir", "Logs")),
            "file_pattern": logger_config.get("file_pattern", f"{logger_type}_{{date}}.log"),
            "enable_console": logger_config.get("enable_console", global_config.get("enable_console", False)),
            "enable_file": logger_config.get("enable_file", global_config.get("enable_file", True)),
            "max_file_size_mb": logger_config.get("max_file_size_mb", global_config.get("max_file_size_mb", 20)),
            "backup_count": logger_config.get("backup_count", global_config.get("backup_count", 5)),
        }


def get_logger_config(logger_type: str) -> Dict[str, Any]:
    """便捷函数：获取日志器配置"""
    return LoggerConfig.get_logger_config(logger_type)


def get_global_config() -> Dict[str, Any]:
    """便捷函数：获取全局配置"""
    return LoggerConfig.get_global_config()


class TurnIdFilter(logging.Filter):
    """为每条记录补充 turn_id 字段"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.turn_id = get_turn_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """单行 JSON 格式（NDJSON）"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "turn_id": getattr(record, "turn_id", None),
            "message": record.getMessage(),
        }
        tool_call = getattr(record, "tool_call", None)
        if tool_call is not None:
            payload["tool_call"] = tool_call
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=repr)


_installed_handlers: List[tuple] = []


def _build_formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JsonFormatter()
    return logging.Formatter(TEXT_FORMAT)


def teardown_logging() -> None:
    """移除 setup_logging 安装的全部处理器"""
    for target_logger, handler in _installed_handlers:
        target_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()


def setup_logging(level_override: Optional[str] = None) -> None:
    """
    按 logger.yaml 安装日志处理器

    可重复调用：上一次安装的处理器会先被移除。

    Args:
        level_override: 覆盖所有日志器的级别（如 Settings.log_level）
    """
    teardown_logging()

    for logger_type in LOGGER_TYPES:
        config = get_logger_config(logger_type)
        level = getattr(logging, str(level_override or config["level"]).upper(), logging.INFO)

        handlers: List[logging.Handler] = []
        if config["enabled"] and config["enable_console"]:
            handlers.append(logging.StreamHandler())
        if config["enabled"] and config["enable_file"]:
            log_dir = Path(config["log_dir"])
            log_dir.mkdir(parents=True, exist_ok=True)
            file_name = config["file_pattern"].format(date=datetime.now().strftime("%Y-%m-%d"))
            handlers.append(
                RotatingFileHandler(
                    log_dir / file_name,
                    maxBytes=int(config["max_file_size_mb"]) * 1024 * 1024,
                    backupCount=int(config["backup_count"]),
                    encoding="utf-8",
                )
            )

        formatter = _build_formatter(config["format"])
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(TurnIdFilter())

        for name in LOGGER_TARGETS[logger_type]:
            target_logger = logging.getLogger(name)
            target_logger.setLevel(level)
            for handler in handlers:
                target_logger.addHandler(handler)
                _installed_handlers.append((target_logger, handler))


__all__ = [
    "LoggerConfig",
    "get_logger_config",
    "get_global_config",
    "TurnIdFilter",
    "JsonFormatter",
    "setup_logging",
    "teardown_logging",
]
