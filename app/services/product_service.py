# app/services/product_service.py
import logging
import re
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.decorators import db_guard
from app.core.storage_utils import delete_public_url, upload_to_storage
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.schemas.product import ProductCreate, ProductUpdate
from app.services.ordering import SYSTEM_FLAGS, SYSTEM_KINDS, SYSTEM_ORDER_FIELDS
from app.services.product_tag_service import ProductTagService

logger = logging.getLogger(__name__)


# --- Icon config ---

MAX_ICON_BYTES = 2 * 1024 * 1024  # 2MB per icon

ALLOWED_ICON_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def slugify(raw: str, fallback: str = "product") -> str:
    """
    Basic slugification:
      - lowercase
      - non-alphanumeric -> '-'
      - collapse multiple '-'
      - strip leading/trailing '-'
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value or fallback


class ProductService:
    """
    Business logic for Product.

    Responsibilities:
      - slug generation & uniqueness
      - system list membership (featured / free flags) and their order fields
      - caller-managed cascade on delete (junction rows first)
      - icon upload/delete orchestration with Supabase Storage
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(
        self,
        repo: ProductRepository,
        junction_repo: ProductTagRepository,
        memberships: ProductTagService,
    ):
        self.repo = repo
        self.junction_repo = junction_repo
        self.memberships = memberships

    # ----- Helpers -----

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Ensure slug is unique by appending -2, -3, ... if needed.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    def _next_order(self, session: Session, field: str, flag: str | None) -> int:
        current = self.repo.max_order(session, field, flag)
        return 0 if current is None else current + 1

    @staticmethod
    def _system_filter(kind: str) -> str:
        try:
            return SYSTEM_KINDS[kind.lower()]
        except KeyError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unknown system list. Allowed: featured, free, all.",
            )

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_ICON_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unsupported image type. Allowed: JPEG, PNG, WEBP, SVG.",
            )

        if len(file_bytes) > MAX_ICON_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail="Icon too large (max 2MB).",
            )

        return ALLOWED_ICON_CONTENT_TYPES[content_type]

    # ----- Reads -----

    @db_guard(default=[])
    def list_products(
        self,
        session: Session,
        include_unpublished: bool = False,
    ) -> list[Product]:
        return self.repo.list_all(session, only_published=not include_unpublished)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database not configured",
            )
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_by_slug(
        self,
        session: Session,
        slug: str,
        include_unpublished: bool = False,
    ) -> Product:
        """
        Product landing page lookup. Drafts are invisible to guests.
        """
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database not configured",
            )
        product = self.repo.get_by_slug(session, slug)
        if not product or (not product.published and not include_unpublished):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    # ----- Writes -----

    @db_guard(default=None)
    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> Product | None:
        """
        Create a new product with a unique slug.

        - Appended to the end of All, and of Featured / Free when flagged.
        - Each tag_id becomes a membership at the end of that tag.
        """
        raw_slug = payload.slug or payload.name
        slug = self._ensure_unique_slug(session, slugify(raw_slug))

        product = Product(
            name=payload.name,
            slug=slug,
            description=payload.description,
            icon_url=payload.icon_url,
            url=payload.url,
            image_url=payload.image_url,
            published=payload.published,
            featured=payload.featured,
            free=payload.free,
            priority=payload.priority,
            tags=payload.tags,
            all_order=self._next_order(session, "all_order", None),
            featured_order=self._next_order(session, "featured_order", "featured") if payload.featured else None,
            free_order=self._next_order(session, "free_order", "free") if payload.free else None,
        )
        product = self.repo.create(session, product)

        for tag_id in dict.fromkeys(payload.tag_ids):
            if not self.memberships.add_membership(session, product.id, tag_id):
                logger.warning(f"create_product: could not add {product.slug} to tag {tag_id}")

        session.refresh(product)
        return product

    @db_guard(default=None)
    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product | None:
        """
        Partial update of a product.

        - If slug is changed, enforce uniqueness.
        - featured / free switched on => appended to that list;
          switched off => its order field is cleared.
        """
        product = self.get_product(session, product_id)

        if payload.name is not None:
            product.name = payload.name

        if payload.slug is not None:
            new_base_slug = slugify(payload.slug)
            if new_base_slug != product.slug:
                product.slug = self._ensure_unique_slug(session, new_base_slug)

        for attr in ("description", "icon_url", "url", "image_url", "priority"):
            value = getattr(payload, attr)
            if value is not None:
                setattr(product, attr, value)

        if payload.tags is not None:
            product.tags = list(payload.tags)

        if payload.published is not None:
            product.published = payload.published

        for flag in ("featured", "free"):
            value = getattr(payload, flag)
            if value is not None and value != getattr(product, flag):
                self._apply_flag(session, product, flag, value)

        return self.repo.update(session, product)

    def _apply_flag(self, session: Session, product: Product, flag: str, value: bool) -> None:
        field = f"{flag}_order"
        setattr(product, flag, value)
        setattr(product, field, self._next_order(session, field, flag) if value else None)

    @db_guard(default=None)
    def set_published(
        self,
        session: Session,
        product_id: uuid.UUID,
        published: bool,
    ) -> Product | None:
        product = self.get_product(session, product_id)
        product.published = published
        return self.repo.update(session, product)

    @db_guard(default=False)
    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> bool:
        """
        Delete a product, its tag memberships, and its Storage icon.

        Junction rows are removed explicitly first; the database is not
        relied upon to cascade.
        """
        product = self.get_product(session, product_id)

        self.junction_repo.delete_rows(
            session, self.junction_repo.list_for_product(session, product.id)
        )
        session.flush()

        # Best-effort Storage cleanup
        if product.icon_url:
            try:
                delete_public_url(product.icon_url)
            except Exception as e:
                logger.warning(f"Icon cleanup failed for {product.slug}: {e}")

        self.repo.delete(session, product)
        return True

    # ----- System lists -----

    @db_guard(default=None)
    def add_to_system_list(
        self,
        session: Session,
        kind: str,
        product_id: uuid.UUID,
    ) -> Product | None:
        """
        Put a product into Featured / Free at the end of that list.

        "All" has no membership flag: publishing is the way in.
        """
        filter_name = self._system_filter(kind)
        flag = SYSTEM_FLAGS[filter_name]
        product = self.get_product(session, product_id)

        if flag is None:
            return product
        if not getattr(product, flag):
            self._apply_flag(session, product, flag, True)
        return self.repo.update(session, product)

    @db_guard(default=None)
    def remove_from_system_list(
        self,
        session: Session,
        kind: str,
        product_id: uuid.UUID,
    ) -> Product | None:
        filter_name = self._system_filter(kind)
        flag = SYSTEM_FLAGS[filter_name]
        product = self.get_product(session, product_id)

        if flag is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Products leave 'All' by being unpublished",
            )
        if getattr(product, flag):
            self._apply_flag(session, product, flag, False)
        return self.repo.update(session, product)

    @db_guard(default=False)
    def reorder_system_list(
        self,
        session: Session,
        kind: str,
        product_ids: list[uuid.UUID],
    ) -> bool:
        """
        Rewrite featured_order / free_order / all_order as 0..N-1.

        Ids that are not members of the list (or do not exist) are skipped
        and do not consume a position.
        """
        filter_name = self._system_filter(kind)
        field = SYSTEM_ORDER_FIELDS[filter_name]
        flag = SYSTEM_FLAGS[filter_name]

        products = {p.id: p for p in self.repo.list_by_ids(session, list(dict.fromkeys(product_ids)))}
        position = 0
        for pid in dict.fromkeys(product_ids):
            product = products.get(pid)
            if product is None or (flag is not None and not getattr(product, flag)):
                logger.warning(f"reorder_system_list: {pid} is not in {filter_name}, skipped")
                continue
            setattr(product, field, position)
            session.add(product)
            position += 1
        session.commit()
        return True

    # ----- Icon -----

    @db_guard(default=None)
    def set_icon(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product | None:
        """
        Upload or replace the icon for a product.

        - Validates content type + size.
        - Uploads new icon to deterministic path, then removes the old
          one from Storage if it lived elsewhere:
            products/<product_id>/icon.<ext>
        """
        product = self.get_product(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        path = f"products/{product.id}/icon.{ext}"
        try:
            public_url = upload_to_storage(path, file_bytes, content_type)
        except RuntimeError as e:
            logger.error(f"Icon upload for {product.slug} failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Storage not configured",
            )

        # Best-effort cleanup of previous icon (same path is overwritten in place)
        if product.icon_url and product.icon_url != public_url:
            try:
                delete_public_url(product.icon_url)
            except Exception as e:
                logger.warning(f"Icon cleanup failed for {product.slug}: {e}")

        product.icon_url = public_url
        return self.repo.update(session, product)
