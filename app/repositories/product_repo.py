# app/repositories/product_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.product import Product
from app.models.product_tag import ProductTag  # noqa: F401  (registers the relationship target)


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        stmt = select(Product).where(Product.slug == slug)
        return session.exec(stmt).first()

    def list_all(
        self,
        session: Session,
        only_published: bool = True,
    ) -> list[Product]:
        stmt = select(Product)
        if only_published:
            stmt = stmt.where(Product.published == True)  # noqa: E712
        stmt = stmt.order_by(Product.created_at, Product.id)
        return list(session.exec(stmt).all())

    def list_by_flag(
        self,
        session: Session,
        flag: str,
        only_published: bool = True,
    ) -> list[Product]:
        """
        Products with `featured` / `free` set.
        """
        stmt = select(Product).where(getattr(Product, flag) == True)  # noqa: E712
        if only_published:
            stmt = stmt.where(Product.published == True)  # noqa: E712
        stmt = stmt.order_by(Product.created_at, Product.id)
        return list(session.exec(stmt).all())

    def list_by_ids(self, session: Session, product_ids: list[uuid.UUID]) -> list[Product]:
        if not product_ids:
            return []
        stmt = select(Product).where(col(Product.id).in_(product_ids))
        return list(session.exec(stmt).all())

    def ids_for_slugs(self, session: Session, slugs: list[str]) -> dict[str, uuid.UUID]:
        if not slugs:
            return {}
        stmt = select(Product.slug, Product.id).where(col(Product.slug).in_(slugs))
        return {slug: product_id for slug, product_id in session.exec(stmt).all()}

    def max_order(self, session: Session, field: str, flag: str | None = None) -> int | None:
        """
        Highest value of an order field, optionally among flagged products only.
        """
        column = getattr(Product, field)
        stmt = select(column).where(column != None)  # noqa: E711
        if flag is not None:
            stmt = stmt.where(getattr(Product, flag) == True)  # noqa: E712
        stmt = stmt.order_by(column.desc()).limit(1)
        return session.exec(stmt).first()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()
