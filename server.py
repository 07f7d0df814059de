"""
加权平均分 HTTP 服务
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import ServerConfig
from errors import AuthenticationFailed, GradeServiceError, InternalError, InvalidRequest
from grade_client import GradeServiceClient, HttpGradeServiceClient
from models import AverageResult, normalize_subjects

logger = logging.getLogger(__name__)

router = APIRouter()


# 数字形式的账号/密码也接受，统一转为字符串
Credential = Union[str, int, float, None]


class AverageRequest(BaseModel):
    url: Credential = None
    username: Credential = None
    password: Credential = None


def compute_average(client: GradeServiceClient, url: Credential,
                    username: Credential, password: Credential) -> AverageResult:
    """登录 -> 获取科目 -> 规范化 -> 计算加权平均

    Raises:
        InvalidRequest: 缺少 url / username / password，此时不会访问成绩服务
        AuthenticationFailed: 成绩服务拒绝登录
        InternalError: 其他所有失败
    """
    if not url or not username or not password:
        raise InvalidRequest()
    url, username, password = str(url), str(username), str(password)

    try:
        session = client.authenticate(url, username, password)
        raw_subjects = client.fetch_subjects(session)
        records = normalize_subjects(raw_subjects)
        result = AverageResult.from_records(records)
    except AuthenticationFailed:
        logger.warning(f"{'[登录]':<15}: {username}@{url} 认证失败")
        raise
    except InternalError as e:
        logger.exception(f"{'[错误]':<15}: 成绩服务处理失败 - {e}")
        raise
    except Exception as e:
        logger.exception(f"{'[错误]':<15}: 成绩服务处理失败 - {e}")
        raise InternalError(str(e) or type(e).__name__) from e

    logger.info(
        f"{'[计算]':<15}: 共 {len(result.details)} 门科目，加权平均 {result.overall_average}"
    )
    return result


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/average")
@router.post("/moyenne")
def average(body: AverageRequest, request: Request):
    client: GradeServiceClient = request.app.state.grade_client
    result = compute_average(client, body.url, body.username, body.password)
    return result.to_dict()


async def grade_service_error_handler(request: Request, exc: GradeServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # 只记录字段位置和错误类型，input 里可能带着密码
    problems = [(error.get("loc"), error.get("type")) for error in exc.errors()]
    logger.warning(f"{'[请求]':<15}: 请求体无效 - {problems}")
    error = InvalidRequest()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(config: Optional[ServerConfig] = None,
               client: Optional[GradeServiceClient] = None) -> FastAPI:
    """创建应用；配置与成绩服务客户端在启动时显式传入"""
    config = config or ServerConfig()
    app = FastAPI(title="Grade Average Service", version="0.1.0")
    app.state.config = config
    app.state.grade_client = client or HttpGradeServiceClient.from_config(config)

    app.add_exception_handler(GradeServiceError, grade_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app
