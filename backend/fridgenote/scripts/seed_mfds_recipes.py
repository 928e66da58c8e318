# scripts/seed_mfds_recipes.py
# 식약처 COOKRCP01 전체를 훑어서 recipes 컬렉션에 업서트
# 실행: python -m fridgenote.scripts.seed_mfds_recipes (backend/ 에서)
import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import UpdateOne

from fridgenote.core.config import settings
from fridgenote.core.errors import ConfigurationError
from fridgenote.db.indexes import RECIPES, ensure_indexes
from fridgenote.services.mfds import MfdsClient
from fridgenote.services.recipes import row_to_stored_doc

log = logging.getLogger("seed_mfds_recipes")

# 식약처 API는 한 번에 1000건까지
CHUNK_SIZE = int(os.getenv("SEED_CHUNK_SIZE", "1000"))
MAX_RECORDS = int(os.getenv("SEED_MAX_RECORDS", "0"))  # 0이면 total_count 까지
PAUSE_SECONDS = float(os.getenv("SEED_PAUSE_SECONDS", "0.5"))


def build_ops(rows: List[Dict[str, Any]]) -> List[UpdateOne]:
    ops = []
    now = datetime.now(timezone.utc)
    for row in rows:
        if not row.get("RCP_SEQ"):
            continue
        doc = row_to_stored_doc(row)
        # id는 최초 생성 때만 (재실행해도 /recipes/{uuid} 링크 유지)
        new_id = doc.pop("id")
        ops.append(
            UpdateOne(
                {"source": doc["source"]},
                {"$set": {**doc, "updated_at": now}, "$setOnInsert": {"id": new_id, "seeded_at": now}},
                upsert=True,
            )
        )
    return ops


async def seed(db, client: MfdsClient, chunk_size: int = CHUNK_SIZE, max_records: int = MAX_RECORDS) -> Dict[str, int]:
    start = 1
    target = max_records or None
    scanned = upserted = matched = 0

    while target is None or scanned < target:
        end = start + chunk_size - 1
        if target is not None:
            end = min(end, target)
        chunk = await client.fetch_recipe_chunk(start, end)
        if chunk.total_count is not None:
            target = min(target, chunk.total_count) if target else chunk.total_count
        if not chunk.rows:
            break

        ops = build_ops(chunk.rows)
        if ops:
            res = await db[RECIPES].bulk_write(ops, ordered=False)
            matched += res.matched_count or 0
            upserted += len(res.upserted_ids or {})
        scanned += len(chunk.rows)
        log.info("seeded %d-%d (scanned=%d, target=%s)", start, end, scanned, target)

        if len(chunk.rows) < end - start + 1:
            break
        start = end + 1
        await asyncio.sleep(PAUSE_SECONDS)

    return {"scanned": scanned, "matched": matched, "upserted": upserted}


async def main():
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    key = settings.mfds_api_key
    if not key:
        raise ConfigurationError("MFDS_API_KEY(또는 FOODSAFETY_API_KEY)가 설정되어 있지 않습니다.")

    cli = AsyncIOMotorClient(settings.MONGODB_URI)
    client = MfdsClient(key)
    try:
        db = cli[settings.MONGODB_DB]
        await ensure_indexes(db)
        result = await seed(db, client)
        log.info("done. %s", result)
    finally:
        await client.aclose()
        cli.close()


if __name__ == "__main__":
    asyncio.run(main())
