# usim_hub/core/exceptions.py
"""
本模块定义了 usim-hub 项目中所有自定义的、语义化的异常类型。

异常按处理方式分为四类：
- 外部服务的瞬时失败（重试耗尽后记录为单项失败，不会中断批次）；
- 数据完整性问题（只报告，除非存在明确的修复流程）；
- 配置错误（启动时致命，进程以非零状态退出）；
- 持久化层错误（底层驱动异常的包装）。
"""


class UsimHubError(Exception):
    """
    所有 usim-hub 自定义异常的通用基类。
    捕获此异常可以处理所有源自本项目的预期错误。
    """

    pass


class ConfigurationError(UsimHubError):
    """
    表示在加载、解析或验证配置时发生的错误。
    例如，缺少翻译服务的 API 密钥，或语言代码不在支持列表中。
    """

    pass


class EngineNotFoundError(UsimHubError, KeyError):
    """
    表示尝试访问一个未注册或不可用的翻译引擎时引发的错误。
    继承自 KeyError 是为了保持与字典查找行为的一致性。
    """

    pass


class DatabaseError(UsimHubError):
    """表示在内容存储层操作（连接、查询、写入）中发生的错误。"""

    pass


class APIError(UsimHubError):
    """
    表示与外部翻译服务交互时发生的错误。
    例如，网络问题、配额耗尽或服务返回错误状态码。
    """

    def __init__(self, message: str, is_retryable: bool = True):
        super().__init__(message)
        self.is_retryable = is_retryable


class TranslationFailedError(APIError):
    """单次翻译调用在重试耗尽（或遇到不可重试错误）后仍然失败。"""

    def __init__(self, message: str, target_lang: str, attempts: int):
        super().__init__(message, is_retryable=False)
        self.target_lang = target_lang
        self.attempts = attempts


class DataIntegrityError(UsimHubError):
    """
    表示内容图谱的引用一致性被破坏。
    例如，译本引用的原文不存在、内部链接指向未发布的 slug、slug 冲突。
    """

    pass
