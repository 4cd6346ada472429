# SPDX-License-Identifier: MIT

from pathlib import Path

from yaml import dump

try:
    from yaml import CDumper as Dumper
except ImportError:
    from yaml import Dumper  # type: ignore[assignment]

from schedboard import configuration
from schedboard.logger import configure_logging
from schedboard.repository.configuration import CONFIGURATION_REPO
from schedboard.time import resolve_timezone
from schedboard.view import state as view_state


def initialize() -> None:
    configuration.CONFIG_PATH.mkdir(parents=True, exist_ok=True)
    configuration.load_data_path_configuration()
    configuration.DATA_PATH.mkdir(parents=True, exist_ok=True)

    __ensure_config_files()

    config = CONFIGURATION_REPO.get_config()
    log_path = config.get("log_path")
    configure_logging(
        config["log_level"],
        Path(log_path) if log_path is not None else None,
    )
    # Fail fast on a bad class timezone before any command runs
    resolve_timezone(config["timezone"])
    view_state.set_show_header(config["show_header"])


def __ensure_config_files() -> None:
    if not configuration.APP_CONFIG_PATH.is_file():
        configuration.APP_CONFIG_PATH.touch()
        config = configuration.get_default_configuration()
        configuration.APP_CONFIG_PATH.write_text(dump(dict(config), Dumper=Dumper))
