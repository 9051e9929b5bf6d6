from sqlalchemy import Column, Integer, String, UniqueConstraint
from meta_api.database import Base


class Term(Base):
    __tablename__ = "terms"
    id = Column(Integer, primary_key=True, index=True)
    taxonomy = Column(String(50), default="category", nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)

    __table_args__ = (UniqueConstraint("taxonomy", "slug", name="unique_term_slug"),)

    def __repr__(self) -> str:
        return f"<Term(id={self.id}, taxonomy={self.taxonomy}, slug={self.slug})>"
