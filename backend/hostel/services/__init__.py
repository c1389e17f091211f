"""
服务层 - 预订分配引擎及其周边管理服务
"""
