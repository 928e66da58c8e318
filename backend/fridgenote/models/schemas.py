# 요청/응답 Pydantic 모델
# 필드명은 프론트 타입과 맞춰 camelCase 그대로 사용 (DB 문서는 snake_case)
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fridgenote.models.categories import IngredientCategory, parse_category
from fridgenote.services.expiry import to_date
from fridgenote.services.matching import RecipeIngredientMatch

StorageType = Literal["냉장", "냉동", "실온"]
DEFAULT_STORAGE_TYPE = "냉장"


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


# 재료 추천
class SuggestionsResponse(BaseModel):
    items: List[str]
    total: int
    nextCursor: Optional[int] = None
    builtAt: datetime
    scannedFrom: str = "mfds_recipes"


class ClassifyResponse(BaseModel):
    name: str
    normalized: str
    category: IngredientCategory


# 레시피
class RecipeRecord(BaseModel):
    id: str
    name: str
    category: str
    method: str
    calories: str
    thumbnailUrl: Optional[str] = None
    ingredients: str = ""
    hashTag: str = ""


class RecipeListResponse(BaseModel):
    recipes: List[RecipeRecord]
    totalCount: int
    page: int
    size: int
    code: Optional[str] = None
    message: Optional[str] = None


class RecipeMatchResult(BaseModel):
    ingredientList: List[str] = Field(default_factory=list)
    matchRate: int = 0
    matchedIngredients: List[str] = Field(default_factory=list)
    missingIngredients: List[str] = Field(default_factory=list)
    totalRecipeIngredients: int = 0

    @classmethod
    def from_match(cls, m: RecipeIngredientMatch) -> "RecipeMatchResult":
        return cls(
            ingredientList=list(m.ingredient_list),
            matchRate=m.match_rate,
            matchedIngredients=list(m.matched_ingredients),
            missingIngredients=list(m.missing_ingredients),
            totalRecipeIngredients=m.total_recipe_ingredients,
        )


class RecipeWithMatch(RecipeRecord, RecipeMatchResult):
    pass


class RecipeWithMatchListResponse(BaseModel):
    recipes: List[RecipeWithMatch]
    totalCount: int
    page: int
    size: int
    code: Optional[str] = None
    message: Optional[str] = None
    pantryCount: int = 0


class RecipeMatchRequest(BaseModel):
    pantry: List[str] = Field(default_factory=list)
    ingredients: str = ""


class RecipeDetailStep(BaseModel):
    index: int
    description: str
    imageUrl: Optional[str] = None


class RecipeDetail(RecipeRecord):
    ingredientList: List[str] = Field(default_factory=list)
    steps: List[RecipeDetailStep] = Field(default_factory=list)
    hashTags: List[str] = Field(default_factory=list)


# 바코드 상품
class ProductOut(BaseModel):
    barcode: str
    name: str
    brand: Optional[str] = None
    quantity: Optional[str] = None
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    source: str = "external"


class ProductResponse(BaseModel):
    barcode: str
    product: Optional[ProductOut] = None
    source: Literal["external", "stub"]
    message: str


# 내 재료 (팬트리)
class ExpiryOut(BaseModel):
    daysLeft: Optional[int] = None
    isExpired: bool = False
    isExpiringSoon: bool = False
    label: str
    tone: str
    status: Optional[str] = None


class PantryItemIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=60)
    category: Optional[IngredientCategory] = None  # 비우면 서버가 분류
    storageType: StorageType = DEFAULT_STORAGE_TYPE
    quantity: Optional[str] = None
    expiryDate: Optional[date] = None
    barcode: Optional[str] = None
    imageUrl: Optional[str] = None
    memo: Optional[str] = None

    @field_validator("quantity", "barcode", "imageUrl", "memo", mode="before")
    @classmethod
    def _v_blank(cls, v):
        return _blank_to_none(v)

    @field_validator("category", mode="before")
    @classmethod
    def _v_category(cls, v):
        # "all"/모르는 값은 자동 분류로
        if v is None or isinstance(v, IngredientCategory):
            return v
        return parse_category(str(v))

    @field_validator("expiryDate", mode="before")
    @classmethod
    def _v_expiry(cls, v):
        # ISO datetime 문자열도 날짜만 사용
        if v is None or isinstance(v, date):
            return v
        if isinstance(v, str) and not v.strip():
            return None
        return to_date(v) or v


class PantryItemUpdate(PantryItemIn):
    name: Optional[str] = Field(default=None, min_length=1, max_length=60)
    storageType: Optional[StorageType] = None


class PantryItemOut(BaseModel):
    id: str
    deviceId: str
    name: str
    category: Optional[IngredientCategory] = None
    storageType: StorageType = DEFAULT_STORAGE_TYPE
    quantity: Optional[str] = None
    expiryDate: Optional[date] = None
    barcode: Optional[str] = None
    imageUrl: Optional[str] = None
    memo: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
    expiry: ExpiryOut


class PantryListResponse(BaseModel):
    items: List[PantryItemOut]
    total: int


class ReminderOut(BaseModel):
    id: str
    ingredientId: str
    ingredientName: str
    dDay: int
    scheduledAt: datetime
    title: str
    body: str


class ReminderListResponse(BaseModel):
    items: List[ReminderOut]
    total: int


# 즐겨찾기
class FavoriteIn(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str
    category: str = "기타"
    thumbnailUrl: Optional[str] = None


class FavoriteOut(FavoriteIn):
    savedAt: datetime


class FavoriteToggleResponse(BaseModel):
    id: str
    favorite: bool


class DeleteResponse(BaseModel):
    ok: bool = True
    deleted: int = 0


# 커뮤니티
# 빈 제목/내용은 라우터에서 안내 메시지로 거절 (422 대신 400)
class CommunityPostIn(BaseModel):
    title: str = Field(default="", max_length=100)
    content: str = Field(default="", max_length=2000)
    authorName: Optional[str] = Field(default=None, max_length=30)


class CommunityCommentIn(BaseModel):
    content: str = Field(default="", max_length=500)
    authorName: Optional[str] = Field(default=None, max_length=30)


class CommunityCommentOut(BaseModel):
    id: str
    postId: str
    deviceId: str
    authorName: str
    content: str
    createdAt: datetime
    updatedAt: datetime


class CommunityPostOut(BaseModel):
    id: str
    deviceId: str
    authorName: str
    title: str
    content: str
    commentCount: int = 0
    likeCount: int = 0
    likedByMe: bool = False
    createdAt: datetime
    updatedAt: datetime


class CommunityPostDetail(CommunityPostOut):
    comments: List[CommunityCommentOut] = []


class CommunityPostListResponse(BaseModel):
    items: List[CommunityPostOut]
    total: int


class CommunityLikeResponse(BaseModel):
    postId: str
    liked: bool
    likeCount: int


class HealthResponse(BaseModel):
    status: str
    db: str
    catalog: str
