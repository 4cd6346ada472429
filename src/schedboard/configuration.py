# SPDX-License-Identifier: MIT

from pathlib import Path
from typing import NotRequired, Optional, TypedDict

from yaml import load

try:
    from yaml import CLoader as Loader
except ImportError:
    from yaml import Loader  # type: ignore[assignment]
import platformdirs

APP_NAME = "schedboard"

CONFIG_PATH = platformdirs.user_config_path(APP_NAME)
APP_CONFIG_PATH = CONFIG_PATH / "config.yaml"

# Set dynamically by load_data_path_configuration()
DATA_PATH: Path = platformdirs.user_data_path(APP_NAME)
DATA_LOG_PATH: Path = DATA_PATH / "schedboard.log"


class Configuration(TypedDict):
    api_base_url: str
    class_id: Optional[str]
    token: Optional[str]
    timezone: str
    visible_days: int
    buffer_days: int
    max_goto_steps: int
    slide_cooldown_ms: int
    edge_hysteresis_px: int
    lock_settle_ms: int
    column_width_px: int
    show_header: bool
    log_level: str
    log_path: NotRequired[Optional[str]]
    data_path: NotRequired[Optional[str]]


def get_default_configuration() -> Configuration:
    return {
        "api_base_url": "http://localhost:4000",
        "class_id": None,
        "token": None,
        "timezone": "UTC",
        "visible_days": 7,
        "buffer_days": 7,
        "max_goto_steps": 12,
        "slide_cooldown_ms": 180,
        "edge_hysteresis_px": 8,
        "lock_settle_ms": 100,
        "column_width_px": 120,
        "show_header": True,
        "log_level": "WARNING",
        "log_path": None,
        "data_path": None,
    }


def load_data_path_configuration() -> None:
    """
    Load the configuration and set the DATA_PATH variables dynamically.

    This must be called after the config file exists and before logging is
    configured.
    """
    global DATA_PATH, DATA_LOG_PATH

    if not APP_CONFIG_PATH.is_file():
        # Config doesn't exist yet, use defaults
        return

    config: Optional[Configuration] = load(APP_CONFIG_PATH.read_text(), Loader=Loader)
    if config is None:
        return
    data_path_setting = config.get("data_path")

    if data_path_setting is not None:
        DATA_PATH = Path(data_path_setting)
        DATA_LOG_PATH = DATA_PATH / "schedboard.log"
