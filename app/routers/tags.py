# app/routers/tags.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from app.core.auth import is_admin, require_admin
from app.core.errors import written_or_503
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.product import OperationResult, ProductRead
from app.schemas.tag import (
    MembershipCreate,
    MembershipOrderUpdate,
    TagCreate,
    TagOrderUpdate,
    TagRead,
    TagUpdate,
)
from app.services.product_tag_service import ProductTagService
from app.services.tag_service import TagService

router = APIRouter(prefix="/tags", tags=["Tags"])

repo = TagRepository()
product_repo = ProductRepository()
junction_repo = ProductTagRepository()
service = TagService(repo, junction_repo, product_repo)
memberships = ProductTagService(junction_repo, product_repo, repo)


# -------- Public endpoints --------


@router.get("", response_model=list[TagRead])
def list_tags(session: Session | None = Depends(get_session)):
    """
    All tags in display order (order_index ascending).

    No database configured => empty list.
    """
    return service.list_tags(session)


@router.get("/{tag_id}/products", response_model=list[ProductRead])
def list_tag_products(
    tag_id: uuid.UUID,
    session: Session | None = Depends(get_session),
    admin: bool = Depends(is_admin),
):
    """
    Members of a tag in their per-tag order.

    - Public endpoint; admins also see unpublished members.
    """
    service.get_tag(session, tag_id)
    return memberships.list_members(session, tag_id, include_unpublished=admin)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=TagRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_tag(
    payload: TagCreate,
    session: Session | None = Depends(get_session),
):
    """
    Create a tag at the end of the display order (admin only).
    """
    return written_or_503(service.create_tag(session, payload))


@router.put(
    "/order",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def reorder_tags(
    payload: TagOrderUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Rewrite the tag display order (admin only).
    """
    return OperationResult(success=service.reorder_tags(session, payload.tag_ids))


@router.patch(
    "/{tag_id}",
    response_model=TagRead,
    dependencies=[Depends(require_admin)],
)
def update_tag(
    tag_id: uuid.UUID,
    payload: TagUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Rename / recolor a tag (admin only).
    """
    return written_or_503(service.update_tag(session, tag_id, payload))


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_tag(
    tag_id: uuid.UUID,
    session: Session | None = Depends(get_session),
):
    """
    Delete a tag and every membership in it (admin only).
    """
    written_or_503(service.delete_tag(session, tag_id))
    return None


@router.post(
    "/{tag_id}/products",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def add_tag_member(
    tag_id: uuid.UUID,
    payload: MembershipCreate,
    session: Session | None = Depends(get_session),
):
    """
    Add a product to a tag (admin only).

    Position defaults to the end of the tag. Adding an existing member is
    a successful no-op.
    """
    return OperationResult(
        success=memberships.add_membership(session, payload.product_id, tag_id, payload.position)
    )


@router.delete(
    "/{tag_id}/products/{product_id}",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def remove_tag_member(
    tag_id: uuid.UUID,
    product_id: uuid.UUID,
    session: Session | None = Depends(get_session),
):
    """
    Remove a product from a tag (admin only).
    """
    return OperationResult(success=memberships.remove_membership(session, product_id, tag_id))


@router.put(
    "/{tag_id}/products/order",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def reorder_tag_members(
    tag_id: uuid.UUID,
    payload: MembershipOrderUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Rewrite the order of products inside a tag (admin only).

    Give either `product_slugs` or `product_ids`. An unknown slug fails the
    whole call without writing anything.
    """
    if (payload.product_slugs is None) == (payload.product_ids is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide exactly one of product_slugs / product_ids",
        )

    if payload.product_slugs is not None:
        ok = memberships.reorder(session, tag_id, payload.product_slugs)
    else:
        ok = memberships.reorder_by_ids(session, tag_id, payload.product_ids)
    return OperationResult(success=ok)
