"""
Comment routes.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.models import Comment, CommentReply, Product, User
from ..dependencies import get_current_user, get_db
from ..errors import ResourceNotFoundError
from ..schemas.commerce import CommentCreateRequest, CommentReplyResponse, CommentResponse
from ..services.notification_service import create_notification, push_notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/comments", tags=["Comments"])


def to_reply(reply: CommentReply) -> CommentReplyResponse:
    return CommentReplyResponse(
        reply_id=reply.reply_id,
        user_id=reply.user_id,
        user_name=reply.user.name if reply.user else None,
        content=reply.content,
        created_at=reply.created_at,
    )


def to_comment(comment: Comment) -> CommentResponse:
    return CommentResponse(
        comment_id=comment.comment_id,
        product_id=comment.product_id,
        user_id=comment.user_id,
        user_name=comment.user.name if comment.user else None,
        content=comment.content,
        created_at=comment.created_at,
        replies=[to_reply(reply) for reply in comment.replies],
    )


@router.get("/product/{product_id}", response_model=List[CommentResponse])
async def list_comments(
    product_id: int,
    db: Session = Depends(get_db),
) -> List[CommentResponse]:
    if db.query(Product).filter(Product.product_id == product_id).first() is None:
        raise ResourceNotFoundError("Product", product_id)

    comments = (
        db.query(Comment)
        .filter(Comment.product_id == product_id)
        .order_by(Comment.created_at.desc(), Comment.comment_id.desc())
        .all()
    )
    return [to_comment(comment) for comment in comments]


@router.post(
    "/product/{product_id}", response_model=CommentResponse, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    product_id: int,
    request: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    product = db.query(Product).filter(Product.product_id == product_id).first()
    if product is None:
        raise ResourceNotFoundError("Product", product_id)

    comment = Comment(user_id=current_user.user_id, product_id=product_id, content=request.content)
    db.add(comment)
    db.flush()

    notifications = []
    if product.artist_id != current_user.user_id:
        notifications.append(
            create_notification(
                db,
                user_id=product.artist_id,
                type="Comment",
                title="New Comment",
                message=f"{current_user.name} commented on '{product.title}'.",
                entity_type="Product",
                entity_id=product_id,
            )
        )
    db.commit()
    db.refresh(comment)
    await push_notifications(notifications)

    return to_comment(comment)


@router.post(
    "/{comment_id}/replies",
    response_model=CommentReplyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_comment(
    comment_id: int,
    request: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CommentReplyResponse:
    comment = db.query(Comment).filter(Comment.comment_id == comment_id).first()
    if comment is None:
        raise ResourceNotFoundError("Comment", comment_id)

    reply = CommentReply(
        comment_id=comment_id, user_id=current_user.user_id, content=request.content
    )
    db.add(reply)
    db.commit()
    db.refresh(reply)

    return to_reply(reply)
