# SPDX-License-Identifier: MIT

from copy import deepcopy
from typing import Any, Optional, cast

from yaml import dump, load

try:
    from yaml import CDumper as Dumper
    from yaml import CLoader as Loader  # noqa: F401
except ImportError:
    from yaml import Dumper, Loader  # type: ignore[assignment]

from schedboard import configuration


class ConfigurationRepository:
    def __init__(self) -> None:
        self._config: Optional[configuration.Configuration] = None
        self.is_dirty = False

    @property
    def config(self) -> configuration.Configuration:
        if self._config is None:
            self.__load_data()
        if self._config is None:
            raise ValueError()
        return self._config

    def __load_data(self) -> None:
        self._config = load(configuration.APP_CONFIG_PATH.read_text(), Loader=Loader)

        if self._config is None:
            raise ValueError()

        # Back-fill settings added after the file was first written
        defaults = cast(dict[str, Any], configuration.get_default_configuration())
        raw_config = cast(dict[str, Any], self._config)
        for key, value in defaults.items():
            if key not in raw_config:
                raw_config[key] = value

    def __save_data(self, config: configuration.Configuration) -> None:
        configuration.APP_CONFIG_PATH.write_text(dump(dict(config), Dumper=Dumper))

    def flush(self) -> None:
        if self._config is not None and self.is_dirty:
            self.__save_data(self._config)
            self.is_dirty = False

    def get_config(self) -> configuration.Configuration:
        return deepcopy(self.config)

    def update_config(
        self,
        api_base_url: Optional[str] = None,
        class_id: Optional[str] = None,
        token: Optional[str] = None,
        timezone: Optional[str] = None,
        visible_days: Optional[int] = None,
        buffer_days: Optional[int] = None,
        max_goto_steps: Optional[int] = None,
        slide_cooldown_ms: Optional[int] = None,
        edge_hysteresis_px: Optional[int] = None,
        lock_settle_ms: Optional[int] = None,
        column_width_px: Optional[int] = None,
        show_header: Optional[bool] = None,
        log_level: Optional[str] = None,
        log_path: Optional[str] = None,
        remove_log_path: bool = False,
        remove_token: bool = False,
    ) -> None:
        self.is_dirty = True

        if api_base_url is not None:
            self.config["api_base_url"] = api_base_url.rstrip("/")
        if class_id is not None:
            self.config["class_id"] = class_id
        if token is not None:
            self.config["token"] = token
        if timezone is not None:
            self.config["timezone"] = timezone
        if visible_days is not None:
            self.config["visible_days"] = visible_days
        if buffer_days is not None:
            self.config["buffer_days"] = buffer_days
        if max_goto_steps is not None:
            self.config["max_goto_steps"] = max_goto_steps
        if slide_cooldown_ms is not None:
            self.config["slide_cooldown_ms"] = slide_cooldown_ms
        if edge_hysteresis_px is not None:
            self.config["edge_hysteresis_px"] = edge_hysteresis_px
        if lock_settle_ms is not None:
            self.config["lock_settle_ms"] = lock_settle_ms
        if column_width_px is not None:
            self.config["column_width_px"] = column_width_px
        if show_header is not None:
            self.config["show_header"] = show_header
        if log_level is not None:
            self.config["log_level"] = log_level.upper()
        if log_path is not None:
            self.config["log_path"] = log_path
        if remove_log_path:
            self.config["log_path"] = None
        if remove_token:
            self.config["token"] = None


CONFIGURATION_REPO = ConfigurationRepository()
