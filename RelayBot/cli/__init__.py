"""
命令行模块
Command line module.
"""
