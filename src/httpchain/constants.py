"""
HTTP 客户端常量配置模块

定义客户端使用的常量、默认配置等
"""

# HTTP 方法常量
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"
HTTP_METHOD_PUT = "PUT"
HTTP_METHOD_DELETE = "DELETE"
HTTP_METHOD_PATCH = "PATCH"
HTTP_METHOD_HEAD = "HEAD"

# 默认配置
DEFAULT_TIMEOUT = 30.0  # 默认整体超时时间（秒）
DEFAULT_CONNECT_TIMEOUT = 10.0  # 默认连接超时时间（秒）
DEFAULT_FOLLOW_REDIRECTS = True  # 默认跟随重定向
DEFAULT_MAX_REDIRECTS = 10  # 默认最大重定向次数
DEFAULT_MAX_WORKERS = 10  # 批量执行时默认最大工作线程数

# 连接池配置
POOL_CONNECTIONS = 10  # 连接池大小（按主机缓存的连接池数量）
POOL_MAXSIZE = 10  # 每个连接池保留的最大连接数
POOL_IDLE_TIMEOUT = 90.0  # 空闲连接保留时间提示（秒），仅作透传配置

# 重试配置：执行引擎不做自动重试，传输层同样关闭
RETRY_DELAY_MS = 1000  # RetryMiddleware 默认间隔（毫秒），仅为配置占位

# 文件下载配置
DEFAULT_CHUNK_SIZE = 8192  # 默认分块大小（字节）

# 内容类型
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"

# 无法读取错误响应体时的占位文本
UNREADABLE_BODY_PLACEHOLDER = "Could not read error body"

# 请求 ID 前缀
REQUEST_ID_PREFIX = "REQ"
