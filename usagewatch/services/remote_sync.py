import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from usagewatch.database import SessionLocal
from usagewatch.models.app_restrictions import AppRestriction
from usagewatch.models.deleted_apps import DeletedApp
from usagewatch.models.new_app_detections import NewAppDetection
from usagewatch.services.errors import RemoteSyncError
from usagewatch.utils.constants import (
    COLLECTION_APP_RESTRICTIONS,
    COLLECTION_DELETED_APPS,
    COLLECTION_NEW_APP_DETECTIONS,
)

logger = logging.getLogger(__name__)


COLLECTION_MODELS = {
    COLLECTION_DELETED_APPS: DeletedApp,
    COLLECTION_APP_RESTRICTIONS: AppRestriction,
    COLLECTION_NEW_APP_DETECTIONS: NewAppDetection,
}


def _model_for(collection: str):
    model = COLLECTION_MODELS.get(collection)
    if model is None:
        raise ValueError(f"Unknown collection: {collection}")
    return model


def _to_dict(row) -> Dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class RemoteSyncAdapter:

    # Idempotent writes into the authoritative store, keyed by "{owner}_{app}"
    # Reads return plain dicts so callers never hold a live ORM session

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def upsert(self, collection: str, key: str, fields: Dict[str, Any], merge: bool = True) -> None:
        model = _model_for(collection)
        db = self.session_factory()
        try:
            row = db.get(model, key)
            if row is None:
                row = model(doc_id=key, **fields)
                db.add(row)
            elif merge:
                # fields not given keep their stored values
                for name, value in fields.items():
                    setattr(row, name, value)
            else:
                for column in model.__table__.columns:
                    if column.name == "doc_id":
                        continue
                    if column.name in fields:
                        value = fields[column.name]
                    elif column.default is not None and not callable(column.default.arg):
                        value = column.default.arg
                    else:
                        value = None
                    setattr(row, column.name, value)
            db.commit()
            logger.debug(f"Upserted {collection}/{key} (merge={merge})")
        except SQLAlchemyError as e:
            db.rollback()
            raise RemoteSyncError(collection, key, e)
        finally:
            db.close()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        model = _model_for(collection)
        db = self.session_factory()
        try:
            row = db.get(model, key)
            return _to_dict(row) if row is not None else None
        except SQLAlchemyError as e:
            raise RemoteSyncError(collection, key, e)
        finally:
            db.close()

    def query_unprocessed(self, collection: str, owner_id: str) -> List[Dict[str, Any]]:
        model = _model_for(collection)
        db = self.session_factory()
        try:
            rows = db.query(model).filter(
                model.owner_id == owner_id,
                model.is_processed == False,  # noqa: E712
            ).order_by(model.detected_at.desc()).all()
            return [_to_dict(row) for row in rows]
        except SQLAlchemyError as e:
            raise RemoteSyncError(collection, owner_id, e)
        finally:
            db.close()

    def delete(self, collection: str, key: str) -> bool:
        model = _model_for(collection)
        db = self.session_factory()
        try:
            deleted = db.query(model).filter(model.doc_id == key).delete()
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise RemoteSyncError(collection, key, e)
        finally:
            db.close()
