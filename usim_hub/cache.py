# usim_hub/cache.py
"""
本模块提供进程内的翻译缓存。

同一批次中大量套餐共享相同的特性文案（如 "5G 지원"），缓存可以避免
对同一段文本重复调用外部翻译服务。
"""

import asyncio
import hashlib
from enum import Enum
from typing import Union

from cachetools import LRUCache, TTLCache
from pydantic import BaseModel, Field


class CacheType(str, Enum):
    """定义了支持的缓存类型。"""

    TTL = "ttl"
    LRU = "lru"


class CacheConfig(BaseModel):
    """缓存配置模型。"""

    enabled: bool = True
    maxsize: int = Field(default=2048, gt=0)
    ttl: int = Field(default=3600, gt=0)
    cache_type: CacheType = CacheType.TTL
    lock_pool_size: int = Field(default=64, gt=0, description="分段锁池大小")


class TranslationCache:
    """一个用于管理翻译结果的、异步安全的内存缓存。"""

    def __init__(self, config: CacheConfig | None = None):
        self.config = config or CacheConfig()
        self.cache: Union[LRUCache[str, str], TTLCache[str, str]]
        self._lock_pool_size = self.config.lock_pool_size
        self._key_locks = [asyncio.Lock() for _ in range(self._lock_pool_size)]
        self._global_lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0
        self._initialize_cache()

    def _initialize_cache(self) -> None:
        if self.config.cache_type is CacheType.TTL:
            self.cache = TTLCache(maxsize=self.config.maxsize, ttl=self.config.ttl)
        else:
            self.cache = LRUCache(maxsize=self.config.maxsize)

    @staticmethod
    def generate_cache_key(
        text: str, source_lang: str, target_lang: str, engine_name: str
    ) -> str:
        """为一次翻译调用生成确定性的缓存键。"""
        text_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return "|".join([text_hash, source_lang, target_lang, engine_name])

    def _lock_for(self, key: str) -> asyncio.Lock:
        return self._key_locks[hash(key) % self._lock_pool_size]

    async def get(
        self, text: str, source_lang: str, target_lang: str, engine_name: str
    ) -> str | None:
        key = self.generate_cache_key(text, source_lang, target_lang, engine_name)
        async with self._lock_for(key):
            result = self.cache.get(key)
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        return result

    async def put(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        engine_name: str,
        result: str,
    ) -> None:
        key = self.generate_cache_key(text, source_lang, target_lang, engine_name)
        async with self._lock_for(key):
            self.cache[key] = result

    async def clear(self) -> None:
        """异步、安全地清空整个缓存。"""
        async with self._global_lock:
            self._key_locks = [asyncio.Lock() for _ in range(self._lock_pool_size)]
            self._initialize_cache()
            self.hits = self.misses = 0
