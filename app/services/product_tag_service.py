# app/services/product_tag_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.decorators import db_guard
from app.models.product import Product
from app.models.product_tag import ProductTag
from app.repositories.product_repo import ProductRepository
from app.repositories.product_tag_repo import ProductTagRepository
from app.repositories.tag_repo import TagRepository
from app.services.ordering import MISSING_POSITION, visible

logger = logging.getLogger(__name__)


class ProductTagService:
    """
    Business logic for the product <-> tag junction.

    Responsibilities:
      - membership add/remove with per-tag positions
      - rewriting a tag's order as a dense 0..N-1 sequence
      - reporting multi-row failures as a single boolean

    Failed writes are rolled back but not compensated otherwise: a False
    result means "reload the tag from the database before trusting any
    local copy".
    """

    def __init__(
        self,
        repo: ProductTagRepository,
        product_repo: ProductRepository,
        tag_repo: TagRepository,
    ):
        self.repo = repo
        self.product_repo = product_repo
        self.tag_repo = tag_repo

    # ----- Reads -----

    @db_guard(default=[])
    def list_members(
        self,
        session: Session,
        tag_id: uuid.UUID,
        include_unpublished: bool = True,
    ) -> list[Product]:
        """
        Products of one tag ordered by their position in that tag.
        """
        rows = self.repo.list_for_tag(session, tag_id)
        positions: dict[uuid.UUID, int] = {}
        for row in rows:
            positions.setdefault(row.product_id, row.order_position)

        products = visible(
            self.product_repo.list_by_ids(session, list(positions)),
            include_unpublished,
        )
        return sorted(products, key=lambda p: positions.get(p.id, MISSING_POSITION))

    # ----- Membership -----

    @db_guard(default=False)
    def add_membership(
        self,
        session: Session,
        product_id: uuid.UUID,
        tag_id: uuid.UUID,
        position: int | None = None,
    ) -> bool:
        """
        Add a product to a tag.

        - position omitted => max(order_position in tag) + 1, or 0 for an empty tag.
        - pair already present => True, nothing inserted (one row per pair).
        - unknown product or tag => False.
        """
        if self.product_repo.get_by_id(session, product_id) is None:
            logger.warning(f"add_membership: product {product_id} not found")
            return False
        if self.tag_repo.get_by_id(session, tag_id) is None:
            logger.warning(f"add_membership: tag {tag_id} not found")
            return False

        if self.repo.get_pair(session, product_id, tag_id):
            logger.info(f"add_membership: product {product_id} already in tag {tag_id}")
            return True

        if position is None:
            current_max = self.repo.max_position(session, tag_id)
            position = 0 if current_max is None else current_max + 1

        self.repo.add(
            session,
            ProductTag(product_id=product_id, tag_id=tag_id, order_position=position),
        )
        session.commit()
        return True

    @db_guard(default=False)
    def remove_membership(
        self,
        session: Session,
        product_id: uuid.UUID,
        tag_id: uuid.UUID,
    ) -> bool:
        """
        Delete every junction row linking the product to the tag.
        """
        rows = self.repo.get_pair(session, product_id, tag_id)
        self.repo.delete_rows(session, rows)
        session.commit()
        return True

    @db_guard(default=False)
    def set_product_tags(
        self,
        session: Session,
        product_id: uuid.UUID,
        tag_ids: list[uuid.UUID],
    ) -> bool:
        """
        Make the product's memberships match `tag_ids` exactly.

        Removed tags lose their row; new tags append the product at the end.
        Existing memberships keep their position.
        """
        wanted = list(dict.fromkeys(tag_ids))
        current = {row.tag_id for row in self.repo.list_for_product(session, product_id)}

        for tag_id in current - set(wanted):
            if not self.remove_membership(session, product_id, tag_id):
                return False

        for tag_id in wanted:
            if tag_id not in current and not self.add_membership(session, product_id, tag_id):
                return False

        return True

    # ----- Ordering -----

    @db_guard(default=False)
    def reorder(
        self,
        session: Session,
        tag_id: uuid.UUID,
        ordered_product_slugs: list[str],
    ) -> bool:
        """
        Reorder a tag by product slugs.

        Any slug that does not resolve makes the whole call fail before
        anything is written.
        """
        ids_by_slug = self.product_repo.ids_for_slugs(session, ordered_product_slugs)
        missing = [slug for slug in ordered_product_slugs if slug not in ids_by_slug]
        if missing:
            logger.warning(f"reorder: unknown product slugs {missing}")
            return False
        return self.reorder_by_ids(
            session, tag_id, [ids_by_slug[slug] for slug in ordered_product_slugs]
        )

    @db_guard(default=False)
    def reorder_by_ids(
        self,
        session: Session,
        tag_id: uuid.UUID,
        ordered_product_ids: list[uuid.UUID],
    ) -> bool:
        """
        Rewrite order_position of every membership row of the tag as 0..N-1.

        Listed products come first in the given order; members that were not
        listed follow in their previous relative order. Listed products that
        are not members are ignored, but a non-empty list with no member at
        all is refused: nothing would be stored.
        """
        rows = self.repo.list_for_tag(session, tag_id)
        requested = list(dict.fromkeys(ordered_product_ids))

        members = list(dict.fromkeys(row.product_id for row in rows))
        listed = [pid for pid in requested if pid in set(members)]
        if requested and not listed:
            logger.warning(f"reorder_by_ids: none of {len(requested)} products is in tag {tag_id}")
            return False
        unlisted = [pid for pid in members if pid not in set(listed)]
        new_positions = {pid: index for index, pid in enumerate(listed + unlisted)}

        for pid in requested:
            if pid not in new_positions:
                logger.warning(f"reorder_by_ids: product {pid} is not in tag {tag_id}, ignored")

        for row in rows:
            row.order_position = new_positions[row.product_id]
            session.add(row)
        session.commit()
        return True
