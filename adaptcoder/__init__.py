"""
AdaptCoder - 让应用根据自然语言需求修补自身源码的助手。
"""

__version__ = "0.1.0"
