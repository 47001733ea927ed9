"""统一异常体系

所有业务异常继承 LucyError，替代散落的 OSError / RuntimeError。
CLI 层可据此输出友好提示（code + message）。
"""

from __future__ import annotations


class LucyError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(LucyError):
    """工具配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(LucyError, ValueError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class BuildIOError(LucyError):
    """文件系统读写 / 建目录 / 删目录失败"""

    code = "IO_ERROR"


class NetworkError(LucyError):
    """网络传输失败，或注册中心返回了错误响应"""

    code = "NETWORK_ERROR"


class ParseError(LucyError):
    """包定义或构建配置文档格式错误"""

    code = "PARSE_ERROR"


class TemplateRenderError(LucyError):
    """渲染模板时变量替换失败"""

    code = "TEMPLATE_ERROR"


class ScriptError(LucyError):
    """构建后脚本加载失败或执行抛出异常"""

    code = "SCRIPT_ERROR"


class ExtractionError(LucyError):
    """归档解压失败"""

    code = "EXTRACTION_ERROR"


class ExecutionError(LucyError):
    """外部命令执行失败"""

    code = "EXECUTION_ERROR"


class BuildCancelledError(LucyError):
    """构建被主动取消"""

    code = "CANCELLED"
