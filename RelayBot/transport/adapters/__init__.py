"""
内置传输层适配器
Built-in transport adapters.
"""
