"""CLI command modules.

Command Groups:
- run: Ankh file pipeline commands, registered at the top level
- image: Docker registry images and tags
- chart: Helm registry charts and local chart maintenance
- config: Ankh configuration
"""

from .chart import chart_app
from .config import config_app
from .image import image_app
from .run import register as register_run_commands

__all__ = [
    "chart_app",
    "config_app",
    "image_app",
    "register_run_commands",
]
