# usim_hub/engines/__init__.py
"""翻译引擎插件包。`engine_registry.discover_engines()` 会扫描本包下的所有模块。"""
