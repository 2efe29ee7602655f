"""
SQLAlchemy-backed reference artifact store.

Records are committed as they are created; posting a batch stamps the
records with the posting module and time. Any SQLAlchemyError is rolled back
and surfaced as the store's typed error.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Sequence

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from artifact_ingestion.domain.types import (
    AssembledAttribute,
    AttributeType,
    RecordOwner,
    RecordType,
    StoredRecord,
    ValueKind,
)
from artifact_ingestion.exceptions import (
    AttributeTypeNotFoundError,
    RecordCreateError,
    RecordTypeNotFoundError,
    StoreError,
    StorePostError,
)
from artifact_ingestion.logging_config import get_logger
from artifact_ingestion.store.catalog import STANDARD_ATTRIBUTE_TYPES, STANDARD_RECORD_TYPES
from artifact_ingestion.store.models import (
    AttributeTypeModel,
    Base,
    RecordAttributeModel,
    RecordModel,
    RecordTypeModel,
)

logger = get_logger("store.sql")


def init_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for url."""
    return create_engine(url, echo=echo)


def create_tables(engine: Engine) -> None:
    """Create all store tables that do not exist yet."""
    Base.metadata.create_all(engine)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def _next_type_id(session: Session, model: type[RecordTypeModel] | type[AttributeTypeModel]) -> int:
    current = session.scalar(select(func.max(model.type_id)))
    return (current or 0) + 1


def seed_catalog(session: Session) -> None:
    """Insert the standard record and attribute types that are missing. Idempotent."""
    existing_records = set(session.scalars(select(RecordTypeModel.name)))
    type_id = _next_type_id(session, RecordTypeModel)
    for name, description in STANDARD_RECORD_TYPES:
        if name not in existing_records:
            session.add(RecordTypeModel(type_id=type_id, name=name, description=description))
            type_id += 1

    existing_attrs = set(session.scalars(select(AttributeTypeModel.name)))
    type_id = _next_type_id(session, AttributeTypeModel)
    for name, kind, display_name in STANDARD_ATTRIBUTE_TYPES:
        if name not in existing_attrs:
            session.add(AttributeTypeModel(
                type_id=type_id,
                name=name,
                value_kind=kind.value,
                display_name=display_name,
            ))
            type_id += 1
    session.commit()


class SqlArtifactStore:
    """ArtifactStore over a SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    # -- type registry --------------------------------------------------------

    def _record_type_row(self, name: str) -> RecordTypeModel | None:
        return self._session.scalars(
            select(RecordTypeModel).where(RecordTypeModel.name == name).limit(1)
        ).first()

    def _attribute_type_row(self, name: str) -> AttributeTypeModel | None:
        return self._session.scalars(
            select(AttributeTypeModel).where(AttributeTypeModel.name == name).limit(1)
        ).first()

    def _store_error(self, action: str, exc: SQLAlchemyError) -> StoreError:
        self._session.rollback()
        return StoreError(f"Cannot {action}: {exc}")

    def resolve_record_type(self, name: str) -> RecordType:
        try:
            row = self._record_type_row(name)
        except SQLAlchemyError as exc:
            raise self._store_error(f"resolve record type {name}", exc) from exc
        if row is None:
            raise RecordTypeNotFoundError(name)
        return row.to_dto()

    def resolve_attribute_type(self, name: str) -> AttributeType:
        try:
            row = self._attribute_type_row(name)
        except SQLAlchemyError as exc:
            raise self._store_error(f"resolve attribute type {name}", exc) from exc
        if row is None:
            raise AttributeTypeNotFoundError(name)
        return row.to_dto()

    def register_record_type(self, name: str, description: str) -> RecordType:
        try:
            row = self._record_type_row(name)
            if row is not None:
                return row.to_dto()
            row = RecordTypeModel(
                type_id=_next_type_id(self._session, RecordTypeModel),
                name=name,
                description=description,
            )
            self._session.add(row)
            self._session.commit()
        except SQLAlchemyError as exc:
            raise self._store_error(f"register record type {name}", exc) from exc
        logger.info("record_type_registered", extra={"record_type": name, "type_id": row.type_id})
        return row.to_dto()

    def add_attribute_type(self, name: str, value_kind: ValueKind, display_name: str = "") -> AttributeType:
        try:
            row = self._attribute_type_row(name)
            if row is not None:
                return row.to_dto()
            row = AttributeTypeModel(
                type_id=_next_type_id(self._session, AttributeTypeModel),
                name=name,
                value_kind=value_kind.value,
                display_name=display_name,
            )
            self._session.add(row)
            self._session.commit()
        except SQLAlchemyError as exc:
            raise self._store_error(f"add attribute type {name}", exc) from exc
        return row.to_dto()

    # -- records --------------------------------------------------------------

    def create_record(
        self,
        record_type: RecordType,
        owner: RecordOwner,
        attributes: Sequence[AssembledAttribute],
    ) -> StoredRecord:
        try:
            type_row = self._record_type_row(record_type.name)
            if type_row is None:
                raise RecordCreateError(record_type.name, "record type is not registered")

            record = RecordModel(
                record_type=type_row,
                owner_id=owner.owner_id,
                owner_kind=owner.kind.value,
                owner_name=owner.name,
            )
            for position, attribute in enumerate(attributes):
                attr_row = self._attribute_type_row(attribute.attribute_type.name)
                if attr_row is None:
                    raise RecordCreateError(
                        record_type.name,
                        f"attribute type {attribute.attribute_type.name} is not registered",
                    )
                record.attributes.append(RecordAttributeModel.from_dto(attribute, position, attr_row))

            self._session.add(record)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordCreateError(record_type.name, str(exc)) from exc

        return StoredRecord(
            record_id=record.id,
            record_type=record_type,
            owner=owner,
            attributes=tuple(attributes),
        )

    def post_batch(self, records: Sequence[StoredRecord], source_module_name: str) -> None:
        if not records:
            raise StorePostError(0, "empty batch")
        ids = [r.record_id for r in records]
        try:
            self._session.execute(
                update(RecordModel)
                .where(RecordModel.id.in_(ids))
                .values(posted_by=source_module_name, posted_at=datetime.now(UTC))
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StorePostError(len(records), str(exc)) from exc
        logger.info(
            "batch_posted",
            extra={"batch_size": len(records), "posted_by": source_module_name},
        )

    def load_record(self, record_id) -> StoredRecord | None:
        row = self._session.get(RecordModel, record_id)
        return row.to_dto() if row is not None else None
