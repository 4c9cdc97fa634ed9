import os
import time
from pathlib import Path


def ankh_home() -> Path:
    """Directory holding the default Ankh config and template history."""
    return Path(os.path.expanduser("~")) / ".ankh"


def default_ankh_config_path() -> str:
    return str(ankh_home() / "config")


def default_kube_config_path() -> str:
    return str(Path(os.path.expanduser("~")) / ".kube" / "config")


def default_data_dir() -> str:
    return str(ankh_home() / "data")


def run_data_dir(data_dir: str) -> str:
    """Per-invocation data directory, keyed by the current unix time."""
    return str(Path(data_dir).expanduser() / str(int(time.time())))
