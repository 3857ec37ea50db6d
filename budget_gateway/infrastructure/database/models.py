"""SQLAlchemy ORM model backing the document store"""

from sqlalchemy import Column, Integer, DateTime, Text, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class DocumentRecord(Base):
    """One JSON document, addressed by (collection, doc_id).

    `version` is SQLAlchemy's optimistic-concurrency column: every UPDATE is
    issued as `... WHERE version = <read version>` and raises StaleDataError
    when another transaction committed first.
    """

    __tablename__ = "documents"

    collection = Column(Text, primary_key=True)
    doc_id = Column(Text, primary_key=True)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
