# fridgenote/db/indexes.py
# 컬렉션 인덱스 생성
# 앱 스타트업(또는 시드 스크립트)에서 ensure_indexes(db)를 await로 호출한다.

PANTRY = "pantry_items"
FAVORITES = "favorites"
RECIPES = "recipes"
COMMUNITY_POSTS = "community_posts"
COMMUNITY_COMMENTS = "community_comments"
COMMUNITY_LIKES = "community_likes"


async def ensure_indexes(db):
    # 내 재료: 기기별 목록 + id 단건 조회
    await db[PANTRY].create_index("id", unique=True)
    await db[PANTRY].create_index([("device_id", 1), ("created_at", -1)])

    # 즐겨찾기: 기기당 레시피 1건
    await db[FAVORITES].create_index([("device_id", 1), ("recipe_id", 1)], unique=True)
    await db[FAVORITES].create_index([("device_id", 1), ("saved_at", -1)])

    # 저장 레시피 (식약처 시드)
    await db[RECIPES].create_index("id", unique=True)
    await db[RECIPES].create_index("source", unique=True, sparse=True)
    await db[RECIPES].create_index([("title", 1)])

    # 커뮤니티 글: 최신순 목록
    await db[COMMUNITY_POSTS].create_index("id", unique=True)
    await db[COMMUNITY_POSTS].create_index([("created_at", -1)])

    # 댓글은 글별 작성순, 좋아요는 기기당 글 1건
    await db[COMMUNITY_COMMENTS].create_index("id", unique=True)
    await db[COMMUNITY_COMMENTS].create_index([("post_id", 1), ("created_at", 1)])
    await db[COMMUNITY_LIKES].create_index([("post_id", 1), ("device_id", 1)], unique=True)
