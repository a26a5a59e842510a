import json
import os
import tempfile
from typing import Any, Dict, Optional

from ..logger import get_logger
from ..models import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE

logger = get_logger(__name__)

CONFIG_FILE = "stringpool.json"
CONFIG_ENV_VAR = "STRINGPOOL_CONFIG"

DEFAULTS: Dict[str, Any] = {
    "source_language": DEFAULT_SOURCE_LANGUAGE,
    "target_language": DEFAULT_TARGET_LANGUAGE,
    "mapping_file": "localization-mapping.json",
    "keep_deleted": False,
    "strict": False,
    "log_level": "INFO",
    "log_file": None,
}


class SettingsManager:
    """
    Project settings kept in a JSON file next to the pool.

    Lookup order for the file: explicit path, $STRINGPOOL_CONFIG, ./stringpool.json.
    Keys this class does not know about are kept and written back untouched.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get(CONFIG_ENV_VAR) or CONFIG_FILE
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        config = dict(DEFAULTS)
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("top-level value is not an object")
                config.update(data)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load config {self.config_path}: {e}. Using defaults.")
                return dict(DEFAULTS)
        return config

    def save_config(self):
        dir_name = os.path.dirname(os.path.abspath(self.config_path))
        temp_name = None
        try:
            os.makedirs(dir_name, exist_ok=True)
            with tempfile.NamedTemporaryFile(mode="w", dir=dir_name, delete=False,
                                             encoding="utf-8", suffix=".tmp") as tf:
                temp_name = tf.name
                json.dump(self.config, tf, indent=2, ensure_ascii=False)
            os.replace(temp_name, self.config_path)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            if temp_name and os.path.exists(temp_name):
                os.remove(temp_name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.config:
            return self.config[key]
        return DEFAULTS.get(key, default)

    def set(self, key: str, value: Any):
        self.config[key] = value

    def override(self, **values: Any):
        """Applies command-line values on top of the file; None means "not given"."""
        for key, value in values.items():
            if value is not None:
                self.config[key] = value

    @property
    def source_language(self) -> str:
        return self.get("source_language")

    @property
    def target_language(self) -> str:
        return self.get("target_language")

    @property
    def mapping_file(self) -> str:
        return self.get("mapping_file")

    @property
    def keep_deleted(self) -> bool:
        return bool(self.get("keep_deleted"))

    @property
    def strict(self) -> bool:
        return bool(self.get("strict"))

    @property
    def log_level(self) -> str:
        return self.get("log_level")

    @property
    def log_file(self) -> Optional[str]:
        return self.get("log_file")
