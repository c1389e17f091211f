"""
青年旅舍预订分配服务
"""
__version__ = "1.0.0"
