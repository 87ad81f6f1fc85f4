import argparse

from utils.config import Config
from utils.models.general_models import Base
from utils.session import create_db_engine
from processors.sui_nft_marketplace import models as marketplace_models

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("-c", "--config", help="Path to config file", required=True)
    args = parser.parse_args()

    config = Config.from_yaml_file(args.config)

    engine = create_db_engine(config.server_config.db_connection_uri)
    Base.metadata.create_all(engine)
    marketplace_models.Base.metadata.create_all(engine)
