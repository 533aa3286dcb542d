"""Post endpoints - publishing and liking posts that appear in the feed."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_insider.dependencies import get_current_user, get_db
from campus_insider.models.post import Post, PostLike
from campus_insider.models.user import User
from campus_insider.schemas.feed import PostView
from campus_insider.schemas.post import PostCreate, PostLikeResponse
from campus_insider.services.sources import to_post_view

router = APIRouter(prefix="/api/posts", tags=["posts"])


async def _get_active_post(db: AsyncSession, post_id: int) -> Post:
    stmt = select(Post).where(Post.id == post_id).where(Post.is_active.is_(True))
    result = await db.execute(stmt)
    post = result.scalar_one_or_none()

    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


async def _get_like(db: AsyncSession, post_id: int, user_id: int) -> PostLike | None:
    stmt = (
        select(PostLike)
        .where(PostLike.post_id == post_id)
        .where(PostLike.user_id == user_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _already_liked() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="You already liked this post",
    )


@router.post(
    "",
    response_model=PostView,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    body: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PostView:
    """Publish a new post authored by the current user."""
    post = Post(
        author=current_user,
        title=body.title,
        content=body.content,
        image_url=body.image_url,
        category=body.category.value,
        tags=body.tags,
        updated_at=None,
    )
    db.add(post)
    await db.flush()

    return to_post_view(post)


@router.post("/{post_id}/like", response_model=PostLikeResponse)
async def like_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PostLikeResponse:
    """Like a post. Each user can like a post once."""
    post = await _get_active_post(db, post_id)

    if await _get_like(db, post_id, current_user.id) is not None:
        raise _already_liked()

    db.add(PostLike(post_id=post_id, user_id=current_user.id))
    try:
        await db.flush()
    except IntegrityError:
        # a concurrent like from the same user won the unique index
        await db.rollback()
        raise _already_liked()
    post.like_count += 1
    await db.flush()

    return PostLikeResponse(post_id=post_id, like_count=post.like_count, liked=True)


@router.delete("/{post_id}/like", response_model=PostLikeResponse)
async def unlike_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PostLikeResponse:
    """Remove the current user's like from a post."""
    post = await _get_active_post(db, post_id)
    like = await _get_like(db, post_id, current_user.id)

    if like is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You haven't liked this post",
        )

    await db.delete(like)
    post.like_count = max(0, post.like_count - 1)
    await db.flush()

    return PostLikeResponse(post_id=post_id, like_count=post.like_count, liked=False)
