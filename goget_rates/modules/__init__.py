"""业务模块。"""
