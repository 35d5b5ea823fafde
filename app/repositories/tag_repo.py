# app/repositories/tag_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.tag import Tag


class TagRepository:
    """
    Data access layer for Tag.
    """

    def get_by_id(self, session: Session, tag_id: uuid.UUID) -> Tag | None:
        return session.get(Tag, tag_id)

    def get_by_name(self, session: Session, name: str) -> Tag | None:
        stmt = select(Tag).where(Tag.name == name)
        return session.exec(stmt).first()

    def list_ordered(self, session: Session) -> list[Tag]:
        stmt = select(Tag).order_by(Tag.order_index, Tag.name)
        return list(session.exec(stmt).all())

    def order_by_name(self, session: Session) -> dict[str, int]:
        """
        name -> order_index for every tag.
        """
        stmt = select(Tag.name, Tag.order_index)
        return {name: order_index for name, order_index in session.exec(stmt).all()}

    def count(self, session: Session) -> int:
        value = session.exec(select(func.count()).select_from(Tag)).one()
        return int(value or 0)

    def list_after(self, session: Session, order_index: int) -> list[Tag]:
        stmt = (
            select(Tag)
            .where(Tag.order_index > order_index)
            .order_by(Tag.order_index)
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, tag: Tag) -> Tag:
        session.add(tag)
        session.commit()
        session.refresh(tag)
        return tag

    def update(self, session: Session, tag: Tag) -> Tag:
        session.add(tag)
        session.commit()
        session.refresh(tag)
        return tag
