# app/routers/products.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import is_admin, require_admin
from app.core.errors import written_or_503
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.product import (
    OperationResult,
    ProductCreate,
    ProductOrderUpdate,
    ProductRead,
    ProductTagsUpdate,
    ProductUpdate,
    PublishUpdate,
)
from app.services.product_service import ProductService
from app.services.product_tag_service import ProductTagService
from app.services.tag_resolution_service import TagResolutionService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
junction_repo = ProductTagRepository()
tag_repo = TagRepository()
memberships = ProductTagService(junction_repo, repo, tag_repo)
service = ProductService(repo, junction_repo, memberships)
resolution = TagResolutionService(repo, junction_repo, tag_repo)


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    filter: str | None = None,
    session: Session | None = Depends(get_session),
    admin: bool = Depends(is_admin),
):
    """
    List products, optionally resolved through a filter label.

    - Public endpoint; admins also see unpublished products.
    - `filter` is "Featured", "Free", "All" or a tag name, and returns the
      list in that filter's display order.
    - No database configured => empty list.
    """
    if filter:
        return resolution.resolve_filter(session, filter, include_unpublished=admin)
    return service.list_products(session, include_unpublished=admin)


@router.get("/filters", response_model=list[str])
def list_filters(
    session: Session | None = Depends(get_session),
    admin: bool = Depends(is_admin),
):
    """
    Filter labels for the catalog tabs.

    System filters first, then every tag used by a visible product in the
    tag display order.
    """
    products = service.list_products(session, include_unpublished=admin)
    return resolution.list_available_filters(session, products, admin)


@router.get("/{slug}", response_model=ProductRead)
def get_product(
    slug: str,
    session: Session | None = Depends(get_session),
    admin: bool = Depends(is_admin),
):
    """
    Get a single product by slug.

    - Public endpoint; unpublished products are 404 for guests.
    """
    return service.get_by_slug(session, slug, include_unpublished=admin)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session | None = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return written_or_503(service.create_product(session, payload))


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return written_or_503(service.update_product(session, product_id, payload))


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session | None = Depends(get_session),
):
    """
    Delete a product, its tag memberships and its icon (admin only).
    """
    written_or_503(service.delete_product(session, product_id))
    return None


@router.put(
    "/{product_id}/publish",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def set_published(
    product_id: uuid.UUID,
    payload: PublishUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Publish or unpublish a product (admin only).
    """
    return written_or_503(service.set_published(session, product_id, payload.published))


@router.put(
    "/{product_id}/tags",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def set_product_tags(
    product_id: uuid.UUID,
    payload: ProductTagsUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Replace the product's tag memberships (admin only).

    New memberships go to the end of each tag; kept ones keep their place.
    """
    service.get_product(session, product_id)
    return OperationResult(success=memberships.set_product_tags(session, product_id, payload.tag_ids))


@router.post(
    "/{product_id}/icon",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
    summary="Upload or replace the icon of a product",
)
def upload_icon(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session | None = Depends(get_session),
):
    """
    Upload a new icon for the product.

    - Accepts JPEG, PNG, WEBP, SVG.
    - Overwrites any previous icon.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return written_or_503(
        service.set_icon(
            session=session,
            product_id=product_id,
            content_type=file.content_type,
            file_bytes=file_bytes,
        )
    )


# -------- System lists (Featured / Free / All) --------


@router.post(
    "/system/{kind}/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def add_to_system_list(
    kind: str,
    product_id: uuid.UUID,
    session: Session | None = Depends(get_session),
):
    """
    Add a product to Featured / Free, at the end of the list (admin only).
    """
    return written_or_503(service.add_to_system_list(session, kind, product_id))


@router.delete(
    "/system/{kind}/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def remove_from_system_list(
    kind: str,
    product_id: uuid.UUID,
    session: Session | None = Depends(get_session),
):
    """
    Remove a product from Featured / Free (admin only).
    """
    return written_or_503(service.remove_from_system_list(session, kind, product_id))


@router.put(
    "/system/{kind}/order",
    response_model=OperationResult,
    dependencies=[Depends(require_admin)],
)
def reorder_system_list(
    kind: str,
    payload: ProductOrderUpdate,
    session: Session | None = Depends(get_session),
):
    """
    Rewrite the order of Featured / Free / All (admin only).
    """
    return OperationResult(success=service.reorder_system_list(session, kind, payload.product_ids))
