# usim_hub/cli/__init__.py
"""usim-hub 命令行工具。"""

from usim_hub.cli.main import app

__all__ = ["app"]
