"""
内置插件 - 每个模块都可以按文件名加载（如 ``!load echo``）
Built-in plugins - each module is loadable by its file name (e.g. ``!load echo``).
"""
