"""
工具模块
Utility module.
"""
