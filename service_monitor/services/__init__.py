"""服务层：配置、状态、调度与查询接口"""
