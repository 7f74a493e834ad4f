from typing import Iterable, Protocol

from flask import current_app
from sqlalchemy import inspect

from followable.db import db


def default_type_name(model) -> str:
    return f"{model.__module__}.{model.__qualname__}"


def _primary_key_name(model) -> str:
    mapper = inspect(model)
    if len(mapper.primary_key) != 1:
        raise ValueError(f"{model.__name__} must have a single-column primary key")
    return mapper.get_property_by_column(mapper.primary_key[0]).key


def _model_of(entity_or_model):
    return entity_or_model if isinstance(entity_or_model, type) else type(entity_or_model)


class EntityLookup(Protocol):
    def model_for(self, canonical_type: str): ...

    def fetch_by_ids(self, canonical_type: str, ids: Iterable[int]) -> list: ...

    def table_name(self, canonical_type: str) -> str | None: ...

    def primary_key_name(self, canonical_type: str) -> str | None: ...

    def key_of(self, entity): ...

    def canonical_type_of(self, entity_or_model) -> str: ...


class _Registration:
    def __init__(self, model, name, followable):
        self.model = model
        self.name = name
        self.followable = followable
        self.key_name = _primary_key_name(model)


class EntityRegistry:
    """EntityLookup over SQLAlchemy-mapped model classes.

    Each registered model gets a canonical type name (its dotted import
    path unless one is given). Mapped models that were never registered
    can still follow and be followed; they just cannot be listed, since
    no lookup knows how to load them back.
    """

    def __init__(self):
        self._by_name = {}
        self._by_model = {}

    def register(self, model, name=None, followable=True):
        if not isinstance(model, type) or inspect(model, raiseerr=False) is None:
            raise ValueError(f"{model!r} is not a mapped model")

        name = name or default_type_name(model)
        existing = self._by_name.get(name)
        if existing is not None and existing.model is not model:
            raise ValueError(f"Type name already registered: {name}")

        registration = _Registration(model, name, followable)
        self._by_name[name] = registration
        self._by_model[model] = registration
        return model

    def __contains__(self, canonical_type) -> bool:
        return canonical_type in self._by_name

    @property
    def type_names(self) -> list:
        return list(self._by_name)

    def model_for(self, canonical_type: str):
        registration = self._by_name.get(canonical_type)
        return registration.model if registration else None

    def is_entity(self, value) -> bool:
        if isinstance(value, type):
            return False
        return inspect(type(value), raiseerr=False) is not None

    def canonical_type_of(self, entity_or_model) -> str:
        model = _model_of(entity_or_model)
        registration = self._by_model.get(model)
        if registration:
            return registration.name
        return default_type_name(model)

    def can_be_followed(self, entity_or_model) -> bool:
        registration = self._by_model.get(_model_of(entity_or_model))
        return bool(registration and registration.followable)

    def primary_key_name(self, canonical_type: str) -> str | None:
        registration = self._by_name.get(canonical_type)
        return registration.key_name if registration else None

    def primary_key_column(self, canonical_type: str):
        model = self.model_for(canonical_type)
        return self.key_column_for(model) if model is not None else None

    def key_column_for(self, model):
        registration = self._by_model.get(model)
        key_name = registration.key_name if registration else _primary_key_name(model)
        return getattr(model, key_name)

    def table_name(self, canonical_type: str) -> str | None:
        model = self.model_for(canonical_type)
        return model.__table__.name if model is not None else None

    def key_of(self, entity):
        return getattr(entity, self.key_column_for(type(entity)).key)

    def query_for(self, canonical_type: str):
        model = self.model_for(canonical_type)
        if model is None:
            return None
        return db.session.query(model)

    def fetch_by_ids(self, canonical_type: str, ids) -> list:
        ids = list(dict.fromkeys(ids))
        key_column = self.primary_key_column(canonical_type)
        if key_column is None or not ids:
            return []

        return (
            self.query_for(canonical_type)
            .filter(key_column.in_(ids))
            .order_by(key_column.asc())
            .all()
        )


def get_entity_registry() -> EntityRegistry:
    return current_app.extensions["followable"]
