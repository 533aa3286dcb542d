"""Schemas for post endpoints."""

from pydantic import BaseModel, Field, field_validator

from campus_insider.schemas.feed import PostCategory


class PostCreate(BaseModel):
    """Request body for creating a post. Text fields are trimmed before validation."""

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    image_url: str | None = None
    category: PostCategory = PostCategory.DISCUSSION
    tags: str | None = Field(default=None, description="Comma-separated tags")

    model_config = {"str_strip_whitespace": True}

    @field_validator("image_url", "tags")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return v or None


class PostLikeResponse(BaseModel):
    """Response after liking or unliking a post."""

    post_id: int
    like_count: int
    liked: bool
