"""服务层 - 注册中心客户端 / 来源适配器 / 发布 / 依赖注入容器"""
