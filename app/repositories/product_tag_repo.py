# app/repositories/product_tag_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.product_tag import ProductTag
from app.models.tag import Tag


class ProductTagRepository:
    """
    Data access layer for the product_tags junction.

    Writes are staged on the session; callers decide when to commit so that
    multi-row operations (reorder, cascades) go out together.
    """

    def get_pair(
        self,
        session: Session,
        product_id: uuid.UUID,
        tag_id: uuid.UUID,
    ) -> list[ProductTag]:
        stmt = select(ProductTag).where(
            ProductTag.product_id == product_id, ProductTag.tag_id == tag_id
        )
        return list(session.exec(stmt).all())

    def list_for_tag(self, session: Session, tag_id: uuid.UUID) -> list[ProductTag]:
        stmt = (
            select(ProductTag)
            .where(ProductTag.tag_id == tag_id)
            .order_by(ProductTag.order_position, ProductTag.created_at)
        )
        return list(session.exec(stmt).all())

    def list_for_tag_name(self, session: Session, tag_name: str) -> list[ProductTag]:
        stmt = (
            select(ProductTag)
            .join(Tag, Tag.id == ProductTag.tag_id)
            .where(Tag.name == tag_name)
            .order_by(ProductTag.order_position, ProductTag.created_at)
        )
        return list(session.exec(stmt).all())

    def list_for_product(self, session: Session, product_id: uuid.UUID) -> list[ProductTag]:
        stmt = select(ProductTag).where(ProductTag.product_id == product_id)
        return list(session.exec(stmt).all())

    def max_position(self, session: Session, tag_id: uuid.UUID) -> int | None:
        stmt = (
            select(ProductTag.order_position)
            .where(ProductTag.tag_id == tag_id)
            .order_by(col(ProductTag.order_position).desc())
            .limit(1)
        )
        return session.exec(stmt).first()

    def add(self, session: Session, row: ProductTag) -> None:
        session.add(row)

    def delete_rows(self, session: Session, rows: list[ProductTag]) -> None:
        for row in rows:
            session.delete(row)
