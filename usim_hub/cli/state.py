# usim_hub/cli/state.py
"""定义 CLI 应用的共享状态对象。"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from usim_hub.config import UsimHubConfig


class State:
    """通过 Typer 上下文在子命令之间传递的共享状态。"""

    def __init__(self, config: "UsimHubConfig") -> None:
        self.config = config
