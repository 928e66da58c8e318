# fridgenote/api/routes_products.py
# 바코드 → 상품 정보 조회. 못 찾아도 200 + stub (수동 입력으로 이어감)

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from fridgenote.core.deps import enforce_rate_limit, get_product_lookup
from fridgenote.core.errors import QueryValidationError
from fridgenote.models.schemas import ProductOut, ProductResponse
from fridgenote.services.products import ProductLookup, is_valid_food_barcode, normalize_barcode

log = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"], dependencies=[Depends(enforce_rate_limit)])


@router.get("", response_model=ProductResponse)
async def lookup_product(barcode: Optional[str] = None, lookup: ProductLookup = Depends(get_product_lookup)):
    code = normalize_barcode(barcode)
    if not code or not is_valid_food_barcode(code):
        raise QueryValidationError("유효한 바코드(숫자 8~14자리)를 전달해 주세요.")

    product = await lookup.lookup(code)
    if product is not None:
        return ProductResponse(
            barcode=code,
            product=ProductOut(**product.to_dict()),
            source="external",
            message="상품 정보를 조회했습니다.",
        )

    log.info("product not found barcode=%s", code)
    return ProductResponse(
        barcode=code,
        product=None,
        source="stub",
        message="외부 상품 정보를 찾지 못했습니다. 스캔 코드를 유지한 채 수동 입력으로 진행해 주세요.",
    )
