# fridgenote/api/routes_community.py
# 커뮤니티 게시판: 글 / 댓글 / 좋아요
# 로그인 없이 기기 id 로 작성자를 구분한다. 수정/삭제는 작성한 기기만 가능

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends

from fridgenote.core.deps import enforce_rate_limit, get_database, get_device_id
from fridgenote.core.errors import ForbiddenError, NotFoundError, QueryValidationError
from fridgenote.db.indexes import COMMUNITY_COMMENTS, COMMUNITY_LIKES, COMMUNITY_POSTS
from fridgenote.models.schemas import (
    CommunityCommentIn,
    CommunityCommentOut,
    CommunityLikeResponse,
    CommunityPostDetail,
    CommunityPostIn,
    CommunityPostListResponse,
    CommunityPostOut,
    DeleteResponse,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/community", tags=["community"], dependencies=[Depends(enforce_rate_limit)])

MAX_POSTS = 100
MAX_COMMENTS = 500
MAX_REACTIONS = 10000

DEFAULT_AUTHOR = "익명 집밥러"
# 작성자 없이 저장된 예전 문서
LEGACY_AUTHOR = "집밥러"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _author(name: Optional[str]) -> str:
    return (name or "").strip() or DEFAULT_AUTHOR


def _post_out(doc: Mapping[str, Any], comment_count: int = 0, like_count: int = 0, liked: bool = False) -> CommunityPostOut:
    return CommunityPostOut(
        id=doc["id"],
        deviceId=doc.get("device_id") or "",
        authorName=doc.get("author_name") or LEGACY_AUTHOR,
        title=doc.get("title") or "",
        content=doc.get("content") or "",
        commentCount=comment_count,
        likeCount=like_count,
        likedByMe=liked,
        createdAt=doc["created_at"],
        updatedAt=doc.get("updated_at") or doc["created_at"],
    )


def _comment_out(doc: Mapping[str, Any]) -> CommunityCommentOut:
    return CommunityCommentOut(
        id=doc["id"],
        postId=doc["post_id"],
        deviceId=doc.get("device_id") or "",
        authorName=doc.get("author_name") or LEGACY_AUTHOR,
        content=doc.get("content") or "",
        createdAt=doc["created_at"],
        updatedAt=doc.get("updated_at") or doc["created_at"],
    )


def _clean_post(body: CommunityPostIn) -> Dict[str, str]:
    title, content = body.title.strip(), body.content.strip()
    if not title or not content:
        raise QueryValidationError("제목과 내용을 모두 입력해주세요.")
    return {"title": title, "content": content}


async def _get_post(db, post_id: str) -> Dict[str, Any]:
    doc = await db[COMMUNITY_POSTS].find_one({"id": post_id}, {"_id": 0})
    if not doc:
        raise NotFoundError("게시글을 찾을 수 없습니다.")
    return doc


async def _reactions(db, post_ids: List[str], device_id: str):
    """글별 댓글 수, 좋아요 수, 내가 좋아요 한 글 id."""
    query = {"post_id": {"$in": post_ids}}
    comments = await db[COMMUNITY_COMMENTS].find(query, {"post_id": 1, "_id": 0}).to_list(length=MAX_REACTIONS)
    likes = await db[COMMUNITY_LIKES].find(query, {"post_id": 1, "device_id": 1, "_id": 0}).to_list(length=MAX_REACTIONS)
    comment_counts = Counter(c["post_id"] for c in comments)
    like_counts = Counter(like["post_id"] for like in likes)
    mine = {like["post_id"] for like in likes if like.get("device_id") == device_id}
    return comment_counts, like_counts, mine


@router.get("/posts", response_model=CommunityPostListResponse)
async def list_posts(device_id: str = Depends(get_device_id), db=Depends(get_database)):
    cursor = db[COMMUNITY_POSTS].find({}, {"_id": 0}).sort("created_at", -1)
    docs = await cursor.to_list(length=MAX_POSTS)
    comment_counts, like_counts, mine = await _reactions(db, [d["id"] for d in docs], device_id)
    items = [_post_out(d, comment_counts[d["id"]], like_counts[d["id"]], d["id"] in mine) for d in docs]
    return CommunityPostListResponse(items=items, total=len(items))


@router.post("/posts", response_model=CommunityPostOut, status_code=201)
async def create_post(body: CommunityPostIn, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    now = _now()
    doc = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        "author_name": _author(body.authorName),
        **_clean_post(body),
        "created_at": now,
        "updated_at": now,
    }
    await db[COMMUNITY_POSTS].insert_one(dict(doc))
    log.info("community post created id=%s", doc["id"])
    return _post_out(doc)


@router.get("/posts/{post_id}", response_model=CommunityPostDetail)
async def get_post(post_id: str, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    """글 + 댓글(작성순)."""
    doc = await _get_post(db, post_id)
    cursor = db[COMMUNITY_COMMENTS].find({"post_id": post_id}, {"_id": 0}).sort("created_at", 1)
    comments = [_comment_out(c) for c in await cursor.to_list(length=MAX_COMMENTS)]
    _, like_counts, mine = await _reactions(db, [post_id], device_id)
    post = _post_out(doc, len(comments), like_counts[post_id], post_id in mine)
    return CommunityPostDetail(**post.model_dump(), comments=comments)


@router.patch("/posts/{post_id}", response_model=CommunityPostOut)
async def update_post(
    post_id: str,
    body: CommunityPostIn,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    doc = await _get_post(db, post_id)
    if doc.get("device_id") != device_id:
        raise ForbiddenError("수정 권한이 없습니다.")

    changes = {**_clean_post(body), "updated_at": _now()}
    await db[COMMUNITY_POSTS].update_one({"id": post_id}, {"$set": changes})
    doc.update(changes)
    comment_counts, like_counts, mine = await _reactions(db, [post_id], device_id)
    return _post_out(doc, comment_counts[post_id], like_counts[post_id], post_id in mine)


@router.delete("/posts/{post_id}", response_model=DeleteResponse)
async def delete_post(post_id: str, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    """글을 지우면 달린 댓글과 좋아요도 같이 지운다."""
    doc = await _get_post(db, post_id)
    if doc.get("device_id") != device_id:
        raise ForbiddenError("삭제 권한이 없습니다.")

    await db[COMMUNITY_COMMENTS].delete_many({"post_id": post_id})
    await db[COMMUNITY_LIKES].delete_many({"post_id": post_id})
    res = await db[COMMUNITY_POSTS].delete_one({"id": post_id})
    return DeleteResponse(deleted=res.deleted_count)


@router.post("/posts/{post_id}/comments", response_model=CommunityCommentOut, status_code=201)
async def add_comment(
    post_id: str,
    body: CommunityCommentIn,
    device_id: str = Depends(get_device_id),
    db=Depends(get_database),
):
    content = body.content.strip()
    if not content:
        raise QueryValidationError("댓글 내용을 입력해주세요.")
    await _get_post(db, post_id)

    now = _now()
    doc = {
        "id": str(uuid.uuid4()),
        "post_id": post_id,
        "device_id": device_id,
        "author_name": _author(body.authorName),
        "content": content,
        "created_at": now,
        "updated_at": now,
    }
    await db[COMMUNITY_COMMENTS].insert_one(dict(doc))
    return _comment_out(doc)


@router.delete("/comments/{comment_id}", response_model=DeleteResponse)
async def delete_comment(comment_id: str, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    doc = await db[COMMUNITY_COMMENTS].find_one({"id": comment_id}, {"_id": 0})
    if not doc:
        raise NotFoundError("댓글을 찾을 수 없습니다.")
    if doc.get("device_id") != device_id:
        raise ForbiddenError("삭제 권한이 없습니다.")

    res = await db[COMMUNITY_COMMENTS].delete_one({"id": comment_id})
    return DeleteResponse(deleted=res.deleted_count)


@router.post("/posts/{post_id}/like", response_model=CommunityLikeResponse)
async def toggle_like(post_id: str, device_id: str = Depends(get_device_id), db=Depends(get_database)):
    """있으면 취소, 없으면 좋아요. 결과 상태와 좋아요 수를 돌려준다."""
    await _get_post(db, post_id)
    key = {"post_id": post_id, "device_id": device_id}
    removed = await db[COMMUNITY_LIKES].delete_one(key)
    liked = not removed.deleted_count
    if liked:
        await db[COMMUNITY_LIKES].insert_one({**key, "id": str(uuid.uuid4()), "created_at": _now()})

    count = await db[COMMUNITY_LIKES].count_documents({"post_id": post_id})
    return CommunityLikeResponse(postId=post_id, liked=liked, likeCount=count)
