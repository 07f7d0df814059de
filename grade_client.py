"""
成绩服务客户端适配层

上游成绩服务（Pronote 之类）的接口形态不固定，这里统一收敛为
authenticate / fetch_subjects 两个能力，核心计算逻辑不关心上游细节。
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, List, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import AuthenticationFailed, SubjectDataNotFound

logger = logging.getLogger(__name__)

# 在上游返回数据中查找科目列表的路径（按优先级排列）
SUBJECT_LIST_PATHS: Tuple[Tuple[str, ...], ...] = (
    (),
    ("subjects",),
    ("currentPeriod", "subjects"),
    ("marks", "subjects"),
)


def extract_subject_list(payload: Any) -> List[Any]:
    """按 SUBJECT_LIST_PATHS 依次尝试，返回第一个找到的科目列表

    Raises:
        SubjectDataNotFound: 所有已知路径都找不到列表
    """
    for path in SUBJECT_LIST_PATHS:
        node = payload
        for key in path:
            if not isinstance(node, Mapping):
                node = None
                break
            node = node.get(key)
        if isinstance(node, list):
            return node
    raise SubjectDataNotFound("cannot locate the subject list in the grade service response")


class GradeSession(requests.Session):
    """单次请求使用的成绩服务会话"""

    def __init__(self, base_url: str,
                 request_timeout: Tuple[float, float] = (5.0, 20.0),
                 debug_http: bool = False,
                 max_retries: int = 0):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.debug_http = debug_http
        self.logged_in = False

        # 只尝试一次，不做重试
        retry = Retry(
            total=int(max_retries),
            connect=int(max_retries),
            read=int(max_retries),
            status=int(max_retries),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=1, pool_maxsize=1)
        self.mount("https://", adapter)
        self.mount("http://", adapter)

        self.headers.update({
            "Accept": "application/json",
            "User-Agent": "grade-average/0.1",
        })

    def url_for(self, path: str) -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method, url, *args, **kwargs):
        """统一加默认 timeout，并在 debug 模式下记录请求耗时"""
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.request_timeout

        start = time.monotonic()
        try:
            res = super().request(method, url, *args, **kwargs)
        except requests.exceptions.Timeout:
            cost_ms = int((time.monotonic() - start) * 1000)
            logger.warning(f"{'[HTTP]':<15}: {method} {url} 超时（{cost_ms}ms） timeout={kwargs.get('timeout')}")
            raise
        except requests.exceptions.RequestException as e:
            cost_ms = int((time.monotonic() - start) * 1000)
            logger.warning(f"{'[HTTP]':<15}: {method} {url} 请求失败（{cost_ms}ms）: {e}")
            raise

        if self.debug_http:
            cost_ms = int((time.monotonic() - start) * 1000)
            logger.info(f"{'[HTTP]':<15}: {method} {url} -> {res.status_code} ({cost_ms}ms)")
        return res


class GradeServiceClient(ABC):
    """成绩服务能力接口"""

    @abstractmethod
    def authenticate(self, service_url: str, username: str, password: str) -> Any:
        """
        登录成绩服务

        Returns:
            已认证的会话对象，供 fetch_subjects 使用

        Raises:
            AuthenticationFailed: 凭据被拒绝
        """

    @abstractmethod
    def fetch_subjects(self, session: Any) -> Sequence[Any]:
        """获取当前学期的科目原始记录列表"""


class HttpGradeServiceClient(GradeServiceClient):
    """基于 JSON HTTP 接口的成绩服务客户端"""

    def __init__(self, login_path: str = "/login", subjects_path: str = "/subjects",
                 request_timeout: Tuple[float, float] = (5.0, 20.0),
                 debug_http: bool = False):
        self.login_path = login_path
        self.subjects_path = subjects_path
        self.request_timeout = request_timeout
        self.debug_http = debug_http

    @classmethod
    def from_config(cls, config) -> "HttpGradeServiceClient":
        return cls(
            login_path=config.login_path,
            subjects_path=config.subjects_path,
            request_timeout=config.request_timeout,
            debug_http=config.debug_http,
        )

    def _new_session(self, service_url: str) -> GradeSession:
        return GradeSession(
            service_url,
            request_timeout=self.request_timeout,
            debug_http=self.debug_http,
        )

    def authenticate(self, service_url: str, username: str, password: str) -> GradeSession:
        session = self._new_session(service_url)
        logger.info(f"{'[登录]':<15}: 开始登录 {session.base_url}")

        try:
            response = session.post(
                session.url_for(self.login_path),
                json={"username": username, "password": password},
            )
            if response.status_code in (401, 403):
                raise AuthenticationFailed()
            response.raise_for_status()

            login_response = response.json() if response.content else {}
            if not isinstance(login_response, Mapping):
                login_response = {}

            if login_response.get("success") is False or login_response.get("loggedIn") is False:
                raise AuthenticationFailed()
        except Exception:
            session.close()
            raise

        token: Optional[str] = login_response.get("token")
        if token:
            session.headers["Authorization"] = f"Bearer {token}"

        session.logged_in = True
        logger.info(f"{'[登录]':<15}: 登录成功")
        return session

    def fetch_subjects(self, session: GradeSession) -> List[Any]:
        if not session.logged_in:
            raise AuthenticationFailed()

        logger.info(f"{'[获取数据]':<15}: 开始获取科目成绩...")
        try:
            response = session.get(session.url_for(self.subjects_path))
            response.raise_for_status()
            subjects = extract_subject_list(response.json())
        finally:
            session.close()

        logger.info(f"{'[获取数据]':<15}: 成功获取 {len(subjects)} 门科目")
        return subjects
