"""
日志配置
"""
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    name: str = "ik_chain",
    level: int = logging.INFO,
    log_dir: Optional[str] = None
) -> logging.Logger:
    """
    配置带控制台（可选文件）输出的 logger

    :param name: logger 名称，默认配置整个 ik_chain 包
    :param level: 日志级别
    :param log_dir: 日志目录，None 表示只输出到控制台
    :return: 配置好的 logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 重复调用时不再叠加 handler
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(log_dir) / f"{name}.log", encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
