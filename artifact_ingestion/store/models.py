"""
ORM models for the reference SQL artifact store.

Contract:
    RecordTypeModel and AttributeTypeModel form the type registry.
    RecordModel rows are created one per assembled record; their ordered
    RecordAttributeModel children hold one typed value each. Posting a batch
    stamps posted_by / posted_at on the records.

Architecture: artifact_ingestion/store. Only the store modules import this.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import (
    BigInteger,
    DateTime,
    Float,
    ForeignKey,
    Index,
    LargeBinary,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AttributeType,
    RecordOwner,
    OwnerKind,
    RecordType,
    StoredRecord,
    TypedValue,
    ValueKind,
)


class UUIDString(TypeDecorator):
    """UUID type stored as String(36) for cross-database portability."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """Declarative base: UUID primary key and consistent column types."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """Abstract base with a creation timestamp."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class RecordTypeModel(Base):
    """Registered record type."""

    __tablename__ = "record_types"

    type_id: Mapped[int] = mapped_column(unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    def to_dto(self) -> RecordType:
        return RecordType(type_id=self.type_id, name=self.name, description=self.description)


class AttributeTypeModel(Base):
    """Registered attribute type."""

    __tablename__ = "attribute_types"

    type_id: Mapped[int] = mapped_column(unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    value_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    def to_dto(self) -> AttributeType:
        return AttributeType(
            type_id=self.type_id,
            name=self.name,
            value_kind=ValueKind(self.value_kind),
            display_name=self.display_name,
        )


class RecordModel(TrackedBase):
    """One created record, attached to an owner."""

    __tablename__ = "records"

    __table_args__ = (
        Index("ix_records_owner", "owner_id"),
        Index("ix_records_record_type", "record_type_id"),
    )

    record_type_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        ForeignKey("record_types.id"),
        nullable=False,
    )
    owner_id: Mapped[str] = mapped_column(String(500), nullable=False)
    owner_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    owner_name: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    posted_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    record_type: Mapped[RecordTypeModel] = relationship("RecordTypeModel")
    attributes: Mapped[list["RecordAttributeModel"]] = relationship(
        "RecordAttributeModel",
        back_populates="record",
        order_by="RecordAttributeModel.position",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> StoredRecord:
        return StoredRecord(
            record_id=self.id,
            record_type=self.record_type.to_dto(),
            owner=RecordOwner(
                owner_id=self.owner_id,
                kind=OwnerKind(self.owner_kind),
                name=self.owner_name,
            ),
            attributes=tuple(a.to_dto() for a in self.attributes),
        )


class RecordAttributeModel(Base):
    """One typed attribute value; exactly one value_* column is set."""

    __tablename__ = "record_attributes"

    __table_args__ = (
        Index("ix_record_attributes_record", "record_id", "position"),
    )

    record_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        ForeignKey("records.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    attribute_type_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        ForeignKey("attribute_types.id"),
        nullable=False,
    )
    value_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    value_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_int: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    value_double: Mapped[float | None] = mapped_column(Float, nullable=True)
    value_bytes: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    source: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    record: Mapped[RecordModel] = relationship("RecordModel", back_populates="attributes")
    attribute_type: Mapped[AttributeTypeModel] = relationship("AttributeTypeModel")

    def to_dto(self) -> AssembledAttribute:
        kind = ValueKind(self.value_kind)
        if kind in (ValueKind.INTEGER, ValueKind.LONG, ValueKind.DATETIME):
            value = self.value_int
        elif kind is ValueKind.DOUBLE:
            value = self.value_double
        elif kind is ValueKind.BYTE:
            value = self.value_bytes
        else:
            value = self.value_text
        return AssembledAttribute(
            attribute_type=self.attribute_type.to_dto(),
            value=TypedValue(kind=kind, value=value),
            source=self.source,
        )

    @classmethod
    def from_dto(
        cls,
        attribute: AssembledAttribute,
        position: int,
        attribute_type_row: AttributeTypeModel,
    ) -> RecordAttributeModel:
        kind = attribute.value.kind
        value = attribute.value.value
        row = cls(
            position=position,
            attribute_type=attribute_type_row,
            value_kind=kind.value,
            source=attribute.source,
        )
        if kind in (ValueKind.INTEGER, ValueKind.LONG, ValueKind.DATETIME):
            row.value_int = value
        elif kind is ValueKind.DOUBLE:
            row.value_double = value
        elif kind is ValueKind.BYTE:
            row.value_bytes = value
        else:
            row.value_text = value
        return row
