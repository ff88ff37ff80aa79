"""通用工具（日志等）。"""
