# 공용 의존성/헬퍼 (기기 식별, 요청 제한, 서비스 객체 주입)
# 서비스 객체는 main.py에서 app.state에 한 번 만들어 두고 여기서 꺼내 쓴다
import threading
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response

from fridgenote.core.config import settings
from fridgenote.core.errors import ConfigurationError, StorageUnavailable
from fridgenote.core.ratelimit import RateLimiter
from fridgenote.db.init import get_db
from fridgenote.services.catalog_cache import CatalogCache
from fridgenote.services.mfds import MfdsClient
from fridgenote.services.products import ProductLookup

COOKIE = "anon_id"
MAX_AGE = 60 * 60 * 24 * 365 * 2  # 2년
DEVICE_HEADER = "x-device-id"
MAX_DEVICE_ID_LENGTH = 64

# sync 의존성은 스레드풀에서 동시에 돌 수 있으므로 클라이언트 생성은 한 번만
_mfds_client_lock = threading.Lock()


def _device_header(request: Request) -> Optional[str]:
    v = (request.headers.get(DEVICE_HEADER) or "").strip()
    return v[:MAX_DEVICE_ID_LENGTH] or None


def client_key(request: Request) -> str:
    # 기기 id → 프록시 헤더 → 소켓 주소 순
    device = _device_header(request)
    if device:
        return device
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_or_set_anon_id(request: Request, response: Response) -> str:
    # 쿠키 없으면 발급, 있으면 그대로 사용
    v = request.cookies.get(COOKIE)
    if not v:
        v = uuid.uuid4().hex
        response.set_cookie(COOKIE, v, max_age=MAX_AGE, httponly=True, samesite="lax")
    return v


def get_device_id(request: Request, response: Response) -> str:
    # 앱은 x-device-id 헤더를 보내고, 웹은 쿠키로 대신한다
    return _device_header(request) or get_or_set_anon_id(request, response)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def enforce_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    limiter.hit(client_key(request))


def mfds_client_for(app: FastAPI) -> MfdsClient:
    """키가 있을 때 처음 필요한 시점에 만든다 (임포트 시점엔 키 검사 안 함)."""
    client = getattr(app.state, "mfds_client", None)
    if client is not None:
        return client
    with _mfds_client_lock:
        client = getattr(app.state, "mfds_client", None)
        if client is None:
            key = settings.mfds_api_key
            if not key:
                raise ConfigurationError(
                    "레시피 API 키가 없습니다. MFDS_API_KEY(권장) 또는 FOODSAFETY_API_KEY를 설정해 주세요."
                )
            client = MfdsClient(key)
            app.state.mfds_client = client
    return client


def get_mfds_client(request: Request) -> MfdsClient:
    return mfds_client_for(request.app)


def get_catalog_cache(request: Request) -> CatalogCache:
    return request.app.state.catalog_cache


def get_product_lookup(request: Request) -> ProductLookup:
    return request.app.state.product_lookup


def get_optional_database():
    # 저장소가 없어도 동작하는 경로용 (없으면 None)
    try:
        return get_db()
    except RuntimeError:
        return None


def get_database(db=Depends(get_optional_database)):
    if db is None:
        raise StorageUnavailable()
    return db
