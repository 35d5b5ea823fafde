# app/services/tag_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.decorators import db_guard
from app.models.tag import Tag
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.schemas.tag import TagCreate, TagUpdate
from app.services.ordering import SYSTEM_FILTERS, legacy_tag_names
from app.services.product_service import slugify

logger = logging.getLogger(__name__)


class TagService:
    """
    Business logic for Tag.

    Responsibilities:
      - keep order_index a dense 0..N-1 sequence (append, compact, rewrite)
      - reject reserved and duplicate names
      - cascade tag deletion to junction rows and legacy name arrays
    """

    def __init__(
        self,
        repo: TagRepository,
        junction_repo: ProductTagRepository,
        product_repo: ProductRepository,
    ):
        self.repo = repo
        self.junction_repo = junction_repo
        self.product_repo = product_repo

    # ----- Helpers -----

    def _ensure_name_available(
        self,
        session: Session,
        name: str,
        current_id: uuid.UUID | None = None,
    ) -> None:
        if name in SYSTEM_FILTERS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"'{name}' is a reserved system tag",
            )
        existing = self.repo.get_by_name(session, name)
        if existing is not None and existing.id != current_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A tag with this name already exists",
            )

    def _rewrite_legacy_names(self, session: Session, old_name: str, new_name: str | None) -> None:
        """
        Rename (or drop, when `new_name` is None) a tag inside every
        product's legacy `tags` array. Staged only; the caller commits.
        """
        for product in self.product_repo.list_all(session, only_published=False):
            names = legacy_tag_names(product.tags)
            if old_name not in names:
                continue
            if new_name is None:
                product.tags = [n for n in names if n != old_name]
            else:
                product.tags = list(dict.fromkeys(new_name if n == old_name else n for n in names))
            session.add(product)

    # ----- Reads -----

    @db_guard(default=[])
    def list_tags(self, session: Session) -> list[Tag]:
        return self.repo.list_ordered(session)

    def get_tag(self, session: Session, tag_id: uuid.UUID) -> Tag:
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database not configured",
            )
        tag = self.repo.get_by_id(session, tag_id)
        if not tag:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Tag not found",
            )
        return tag

    # ----- Writes -----

    @db_guard(default=None)
    def create_tag(self, session: Session, payload: TagCreate) -> Tag | None:
        """
        Create a tag at the end of the display order.

        - slug defaults to slugify(name).
        """
        self._ensure_name_available(session, payload.name)

        tag = Tag(
            name=payload.name,
            slug=slugify(payload.slug or payload.name, fallback="tag"),
            description=payload.description,
            color=payload.color,
            order_index=self.repo.count(session),
        )
        return self.repo.create(session, tag)

    @db_guard(default=None)
    def update_tag(
        self,
        session: Session,
        tag_id: uuid.UUID,
        payload: TagUpdate,
    ) -> Tag | None:
        """
        Partial update of a tag.

        Renaming regenerates the slug unless one is given explicitly, and
        renames the tag inside legacy `tags` arrays too.
        """
        tag = self.get_tag(session, tag_id)

        if payload.name is not None and payload.name != tag.name:
            self._ensure_name_available(session, payload.name, current_id=tag.id)
            self._rewrite_legacy_names(session, tag.name, payload.name)
            tag.name = payload.name
            if payload.slug is None:
                tag.slug = slugify(payload.name, fallback="tag")

        if payload.slug is not None:
            tag.slug = slugify(payload.slug, fallback="tag")

        if payload.description is not None:
            tag.description = payload.description

        if payload.color is not None:
            tag.color = payload.color

        return self.repo.update(session, tag)

    @db_guard(default=False)
    def delete_tag(self, session: Session, tag_id: uuid.UUID) -> bool:
        """
        Delete a tag.

        Order of operations:
          1. junction rows referencing the tag
          2. the name in legacy `tags` arrays (so the legacy fallback
             cannot resurrect a deleted tag)
          3. the tag row
          4. order_index of every later tag shifted down by one
        """
        tag = self.get_tag(session, tag_id)
        tag_name = tag.name

        self.junction_repo.delete_rows(session, self.junction_repo.list_for_tag(session, tag.id))

        self._rewrite_legacy_names(session, tag_name, None)

        for later in self.repo.list_after(session, tag.order_index):
            later.order_index -= 1
            session.add(later)

        session.delete(tag)
        session.commit()
        logger.info(f"Deleted tag '{tag_name}' and its memberships")
        return True

    @db_guard(default=False)
    def reorder_tags(self, session: Session, tag_ids: list[uuid.UUID]) -> bool:
        """
        Rewrite order_index as 0..N-1 following `tag_ids`.

        Tags missing from the list keep their relative order after the
        listed ones; unknown ids are ignored.
        """
        tags = self.repo.list_ordered(session)
        by_id = {tag.id: tag for tag in tags}

        listed = [by_id[tid] for tid in dict.fromkeys(tag_ids) if tid in by_id]
        listed_ids = {tag.id for tag in listed}
        rest = [tag for tag in tags if tag.id not in listed_ids]

        for index, tag in enumerate(listed + rest):
            tag.order_index = index
            session.add(tag)
        session.commit()
        return True
