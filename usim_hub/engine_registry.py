# usim_hub/engine_registry.py
"""本模块负责动态发现和加载 `usim_hub.engines` 包下所有可用的翻译引擎。"""

import importlib
import pkgutil
from typing import Any

import structlog

from usim_hub.core.exceptions import EngineNotFoundError
from usim_hub.engines.base import BaseTranslationEngine

log = structlog.get_logger(__name__)
ENGINE_REGISTRY: dict[str, type[BaseTranslationEngine[Any]]] = {}


def discover_engines() -> None:
    """
    动态发现 `usim_hub.engines` 包下的所有引擎并注册。

    此函数是幂等的，只在首次调用时执行发现操作。缺少可选依赖
    （如 `openai`、`translators`）的引擎会被跳过，而不是让整个进程失败。
    """
    if ENGINE_REGISTRY:
        return

    import usim_hub.engines

    registered: list[str] = []
    skipped: list[dict[str, str]] = []

    for module_info in pkgutil.iter_modules(usim_hub.engines.__path__):
        module_name = module_info.name
        if module_name == "base" or module_name.startswith("_"):
            continue
        try:
            module = importlib.import_module(f"usim_hub.engines.{module_name}")
        except ImportError as e:
            skipped.append({"engine": module_name, "missing_dependency": str(e.name)})
            continue

        for attr in vars(module).values():
            if (
                isinstance(attr, type)
                and issubclass(attr, BaseTranslationEngine)
                and attr is not BaseTranslationEngine
                and attr.__module__ == module.__name__
            ):
                engine_name = attr.__name__.replace("Engine", "").lower()
                ENGINE_REGISTRY[engine_name] = attr
                registered.append(engine_name)

    log.info("引擎发现完成。", registered=sorted(registered), skipped=skipped)


def get_engine_class(name: str) -> type[BaseTranslationEngine[Any]]:
    discover_engines()
    try:
        return ENGINE_REGISTRY[name]
    except KeyError:
        raise EngineNotFoundError(f"引擎 '{name}' 未在引擎注册表中找到。") from None


def create_engine(
    name: str, engine_configs: dict[str, Any] | None = None
) -> BaseTranslationEngine[Any]:
    """根据名称与 `engine_configs` 中对应的配置段创建引擎实例。"""
    engine_class = get_engine_class(name)
    config_data = (engine_configs or {}).get(name, {})
    engine_config = engine_class.CONFIG_MODEL(**config_data)
    engine = engine_class(engine_config)
    log.info("引擎实例已创建", engine_name=name, version=engine_class.VERSION)
    return engine
