"""构建编排核心

模块说明:
- models.py: 包定义 / 文件映射 / 构建报告
- worktree.py: 临时工作目录分配与回收
- credentials.py: 注册中心登录凭据缓存
- fetcher.py: 源码获取（注册中心归档 / Git 克隆）
- transform.py: 文件渲染与复制（并发扇出 + 汇合）
- scripts.py: 构建后脚本顺序执行
- builder.py: 依赖递归构建与整体编排
"""
