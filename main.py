"""
加权平均分服务主程序
"""

import logging
import sys

import uvicorn

from config import ConfigError, load_config
from server import create_app

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def main():
    """主函数 - 加载配置并启动 HTTP 服务"""
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging()
        logger.error(f"{'[错误]':<15}: {e}")
        sys.exit(1)

    setup_logging(config.log_level)
    app = create_app(config)

    logger.info(f"{'[启动]':<15}: Server listening on {config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
