"""cmd-runner - 托管外部进程运行器。

启动子进程、捕获 stdout/stderr、支持协作式取消（连同整个进程组一起终止）。

环境变量:
    CMDR_SHELL: 执行命令字符串使用的 shell (默认 sh)
    CMDR_GROUP_SIGNAL: stop() 发送给进程组的信号 (默认 TERM)
    CMDR_LOG_DEBUG: 日志输出到临时文件 (默认 false)

用法:
    cmd-runner --timeout 10 -- make test
"""

__version__ = "0.1.0"

from .app import main

__all__ = ["__version__", "main"]
