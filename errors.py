"""
接口错误类型
"""

from typing import Any, Dict, Optional


class GradeServiceError(Exception):
    """接口错误基类，携带 HTTP 状态码与简短错误信息"""

    status_code = 500
    error = "Internal error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.error)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class InvalidRequest(GradeServiceError):
    """请求缺少必要字段"""

    status_code = 400
    error = "url, username and password are required"


class AuthenticationFailed(GradeServiceError):
    """成绩服务认证失败"""

    status_code = 401
    error = "Authentication failed"


class InternalError(GradeServiceError):
    """其他所有失败：网络、解析、上游数据格式等"""

    status_code = 500
    error = "Internal error"


class SubjectDataNotFound(InternalError):
    """上游返回的数据中找不到科目列表"""
