import sys
import logging
import argparse

from .config import DEFAULT_CONFIG_PATH, ConfigError, ProxyConfig
from .server import ProxyServer

logger = logging.getLogger("substitution_proxy")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Reverse proxy serving local substitution files in place of upstream responses"
    )
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH,
                        help=f"Path to the JSON config file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = ProxyConfig.from_file(args.config)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Proxy start on {config.host}:{config.port}")
    server = ProxyServer(config)
    try:
        server.start()
    except KeyboardInterrupt:
        logger.info("Shutting down proxy")
        server.shutdown()
    return 0


if __name__ == '__main__':
    sys.exit(main())
