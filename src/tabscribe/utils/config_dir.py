from pathlib import Path

from platformdirs import user_config_dir

CONFIG_DIR_NAME = "tabscribe"


def get_config_dir() -> Path:
    """Get the directory holding tabscribe's session log."""
    config_dir = Path(user_config_dir(CONFIG_DIR_NAME))
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir
