# fridgenote/services/products.py
# 바코드 → 상품 정보 (Open Food Facts)
# 못 찾으면 None. 수동 입력 폴백이 정상 흐름이라 라우터는 stub 응답으로 200을 준다.

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from fridgenote.core.config import settings

log = logging.getLogger(__name__)

FOOD_BARCODE_RE = re.compile(r"^\d{8,14}$")
NON_DIGIT_RE = re.compile(r"[^\d]")

OFF_FIELDS = ("code", "product_name", "product_name_ko", "brands", "quantity", "categories", "image_url")


def normalize_barcode(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    digits = NON_DIGIT_RE.sub("", value)
    return digits or None


def is_valid_food_barcode(value: Optional[str]) -> bool:
    return bool(value) and bool(FOOD_BARCODE_RE.match(value))


@dataclass
class ProductInfo:
    barcode: str
    name: str
    brand: Optional[str] = None
    quantity: Optional[str] = None
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    source: str = "external"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _trimmed(v: Any) -> Optional[str]:
    s = v.strip() if isinstance(v, str) else ""
    return s or None


def parse_off_product(barcode: str, payload: Any) -> Optional[ProductInfo]:
    # status == 1 이 "찾음"
    if not isinstance(payload, Mapping) or payload.get("status") != 1:
        return None
    product = payload.get("product")
    if not isinstance(product, Mapping):
        return None

    name = _trimmed(product.get("product_name_ko")) or _trimmed(product.get("product_name"))
    if not name:
        return None

    return ProductInfo(
        barcode=barcode,
        name=name,
        brand=_trimmed(product.get("brands")),
        quantity=_trimmed(product.get("quantity")),
        category=_trimmed(product.get("categories")),
        imageUrl=_trimmed(product.get("image_url")),
    )


class ProductLookup:
    def __init__(
        self,
        base_url: str = settings.OPEN_FOOD_FACTS_URL,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"User-Agent": "FridgeNote/0.1 (barcode lookup)"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def lookup(self, barcode: str) -> Optional[ProductInfo]:
        url = f"{self.base_url}/{quote(barcode, safe='')}.json"
        try:
            resp = await self._client.get(url, params={"fields": ",".join(OFF_FIELDS)})
        except httpx.HTTPError as e:
            log.warning("상품 정보 조회 실패 barcode=%s: %s", barcode, e)
            return None

        if resp.status_code != 200:
            return None
        try:
            payload = resp.json()
        except ValueError:
            log.warning("상품 정보 응답 해석 실패 barcode=%s", barcode)
            return None
        return parse_off_product(barcode, payload)
