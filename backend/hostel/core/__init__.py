"""
基础设施抽象层 - 通知渠道与调度后端接口
"""
