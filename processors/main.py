import argparse
import logging
import signal
from utils.config import Config
from utils.logging import configure_logger
from utils.worker import IndexerProcessorServer


def main() -> None:
    # Configure the logger and make it the root logger
    logger = configure_logger("default_python_logger", logging.INFO)
    logging.root = logger

    parser = argparse.ArgumentParser()
    parser.add_argument("-c", "--config", help="Path to config file", required=True)
    args = parser.parse_args()
    # Fails fast on missing package id, marketplace id or database uri
    config = Config.from_yaml_file(args.config)

    indexer_server = IndexerProcessorServer(
        config,
    )

    def shutdown(signum, frame) -> None:
        logging.info(
            "[Indexer] Shutting down gracefully", extra={"signal": signal.Signals(signum).name}
        )
        indexer_server.stop()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    indexer_server.run()


if __name__ == "__main__":
    main()
