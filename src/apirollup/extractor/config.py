import json
from pathlib import Path
from typing import Any

import commentjson  # type: ignore

_PATH_KEYS = (
    "report_folder",
    "report_temp_folder",
    "report_file_name",
    "untrimmed_file_path",
    "alpha_trimmed_file_path",
    "beta_trimmed_file_path",
    "public_trimmed_file_path",
    "entity_table_path",
)

_NEWLINE_KINDS = ("lf", "crlf", "os")


class ConfigurationManager:
    """
    Manages loading and merging of application configuration.
    """

    def __init__(self, *, base_path: Path | None = None) -> None:
        self._base_path = base_path or Path(__file__).parent

    def load_config(
        self, user_config_path: str | None, cli_overrides: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Loads defaults, merges with user JSON, and applies CLI overrides.
        """
        config = self._load_defaults()

        if user_config_path:
            self._merge_user_file(config, Path(user_config_path))

        # Apply CLI overrides (filtering out None values)
        config.update({k: v for k, v in cli_overrides.items() if v is not None})

        self._validate(config)
        return config

    @staticmethod
    def expand_paths(config: dict[str, Any], package_name: str) -> dict[str, Any]:
        """
        Returns a copy of the config with <packageName> and
        <unscopedPackageName> substituted in every path setting.
        """
        unscoped_name = package_name.split("/")[-1]
        expanded = dict(config)
        for key in _PATH_KEYS:
            value = expanded.get(key)
            if value:
                expanded[key] = value.replace("<packageName>", package_name).replace(
                    "<unscopedPackageName>", unscoped_name
                )
        return expanded

    def _load_defaults(self) -> dict[str, Any]:
        defaults_path = self._base_path / "defaults.json"
        if not defaults_path.exists():
            return {}

        with open(defaults_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _merge_user_file(self, config: dict[str, Any], path: Path) -> None:
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                user_conf = commentjson.load(f)
        except Exception as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        # Message rules are merged per message id rather than replaced
        user_messages = user_conf.pop("messages", None)
        config.update(user_conf)
        if user_messages:
            messages = dict(config.get("messages", {}))
            for message_id, rule in user_messages.items():
                messages[message_id] = {**messages.get(message_id, {}), **rule}
            config["messages"] = messages

    def _validate(self, config: dict[str, Any]) -> None:
        if config.get("newline_kind", "lf") not in _NEWLINE_KINDS:
            raise ValueError(
                f'Invalid newline_kind "{config.get("newline_kind")}". '
                f"Expected one of: {', '.join(_NEWLINE_KINDS)}"
            )
        if not isinstance(config.get("messages", {}), dict):
            raise ValueError('The "messages" setting must be an object')
