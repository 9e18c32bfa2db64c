import logging
import logging.config

from ..config import AppConfig


def setup_logging(config: AppConfig) -> logging.Logger:
    """Настройка логирования из конфигурации приложения"""
    if config.log_to_file:
        config.log_dir.mkdir(exist_ok=True, parents=True)

    logging.config.dictConfig(config.get_logging_config())

    logger = logging.getLogger("habitlens")
    logger.debug(f"Logging configured: level={config.log_level.value}, file={config.log_to_file}")
    return logger
