import logging
from threading import Lock
from typing import NamedTuple

from flask import current_app
from sqlalchemy import false

from followable.db import db
from followable.registry.entity_registry import get_entity_registry
from followable.registry.type_aliases import TypeAliasResolver
from followable.repositories import follow_repository
from followable.repositories.follow_repository import (
    FOLLOWABLE,
    FOLLOWER,
    other_side,
)
from followable.services.follow_results import (
    DEFAULT_PER_PAGE,
    FollowQuery,
    MixedResults,
)


logger = logging.getLogger(__name__)


class FollowTargetError(ValueError):
    pass


class EntityRef(NamedTuple):
    type: str
    id: int | None


def _coerce_id(value):
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


class FollowGraphService:
    """Follow edges between entities of any registered type.

    ``subject`` arguments are entity instances. Targets may be an entity, an
    ``EntityRef`` or ``(type, id)`` tuple, a bare id (taken to be of the
    subject's own type) or, for filters only, a type token or model class.
    """

    def __init__(self, registry, aliases=None, allow_self_follow=False):
        self.registry = registry
        self.aliases = aliases or TypeAliasResolver()
        self.allow_self_follow = allow_self_follow

    def stored_type(self, type_or_model) -> str:
        if isinstance(type_or_model, type):
            canonical = self.registry.canonical_type_of(type_or_model)
            return self.aliases.resolve_alias(canonical)
        return self.aliases.stored_type(type_or_model)

    def _canonical(self, stored_type):
        return self.aliases.resolve_canonical(stored_type)

    def model_for(self, stored_type):
        return self.registry.model_for(self._canonical(stored_type))

    def entity_ref(self, entity) -> EntityRef:
        return EntityRef(self.stored_type(type(entity)), self.registry.key_of(entity))

    def _normalize(self, default_type, target) -> EntityRef:
        if isinstance(target, tuple):
            if len(target) != 2:
                raise FollowTargetError(f"Expected a (type, id) pair, got {target!r}")
            return EntityRef(self.stored_type(target[0]), _coerce_id(target[1]))

        if target is None or isinstance(target, (bool, float)):
            raise FollowTargetError(f"Unsupported follow target: {target!r}")

        if isinstance(target, int):
            return EntityRef(default_type, target)

        if isinstance(target, str):
            if target.strip().isdigit():
                return EntityRef(default_type, int(target))
            return EntityRef(self.stored_type(target), None)

        if isinstance(target, type):
            return EntityRef(self.stored_type(target), None)

        if self.registry.is_entity(target):
            return self.entity_ref(target)

        raise FollowTargetError(f"Unsupported follow target: {target!r}")

    def normalize_target(self, subject, target) -> EntityRef:
        return self._normalize(self.entity_ref(subject).type, target)

    # edges

    def follow(self, subject, target, metadata=None) -> bool:
        follower = self.entity_ref(subject)
        followable = self.normalize_target(subject, target)
        if followable.id is None:
            return False

        if follower == followable and not self.allow_self_follow:
            logger.debug("Self-follow refused for %s:%s", *follower)
            return False

        if follow_repository.follow_exists(follower, followable):
            return False

        return follow_repository.create_follow(follower, followable, metadata) is not None

    def unfollow(self, subject, target) -> bool:
        followable = self.normalize_target(subject, target)
        if followable.id is None:
            return False
        return follow_repository.delete_follow(self.entity_ref(subject), followable) > 0

    def toggle_follow(self, subject, target, metadata=None) -> bool:
        if self.is_following(subject, target):
            self.unfollow(subject, target)
            return False

        return self.follow(subject, target, metadata) or self.is_following(subject, target)

    def is_following(self, subject, target) -> bool:
        followable = self.normalize_target(subject, target)
        if followable.id is None:
            return False
        return follow_repository.follow_exists(self.entity_ref(subject), followable)

    def is_followed_by(self, subject, follower) -> bool:
        follower_ref = self.normalize_target(subject, follower)
        if follower_ref.id is None:
            return False
        return follow_repository.follow_exists(follower_ref, self.entity_ref(subject))

    def is_mutual_follow(self, subject, other) -> bool:
        return self.is_following(subject, other) and self.is_following(other, subject)

    def update_follow_metadata(self, subject, target, metadata) -> bool:
        followable = self.normalize_target(subject, target)
        if followable.id is None:
            return False

        follow = follow_repository.get_follow(self.entity_ref(subject), followable)
        if follow is None:
            return False

        follow_repository.update_follow_metadata(follow, metadata)
        return True

    def following_records(self, subject):
        return follow_repository.follow_records(follower=self.entity_ref(subject))

    def follower_records(self, subject):
        return follow_repository.follow_records(followable=self.entity_ref(subject))

    def edge_endpoints(self, follow):
        return (
            self._fetch_one(follow.follower_type, follow.follower_id),
            self._fetch_one(follow.followable_type, follow.followable_id),
        )

    def _fetch_one(self, stored_type, entity_id):
        entities = self.registry.fetch_by_ids(self._canonical(stored_type), [entity_id])
        return entities[0] if entities else None

    # counts

    def following_count(self, subject, type=None) -> int:
        return follow_repository.count_follows(
            follower=self.entity_ref(subject),
            followable_type=self.stored_type(type) if type is not None else None,
        )

    def followers_count(self, subject, type=None) -> int:
        return follow_repository.count_follows(
            followable=self.entity_ref(subject),
            follower_type=self.stored_type(type) if type is not None else None,
        )

    # listings

    def followings(self, subject, type=None):
        return self._related(subject, FOLLOWABLE, type=type)

    def followers(self, subject, type=None):
        return self._related(subject, FOLLOWER, type=type)

    def followings_of_type(self, subject, types):
        return self._related(subject, FOLLOWABLE, types=types)

    def followers_of_type(self, subject, types):
        return self._related(subject, FOLLOWER, types=types)

    def followings_paginated(self, subject, per_page=DEFAULT_PER_PAGE, type=None, page=1):
        return self.followings(subject, type).paginate(page=page, per_page=per_page)

    def followers_paginated(self, subject, per_page=DEFAULT_PER_PAGE, type=None, page=1):
        return self.followers(subject, type).paginate(page=page, per_page=per_page)

    def followings_grouped(self, subject) -> dict:
        return self._grouped(subject, FOLLOWABLE)

    def followers_grouped(self, subject) -> dict:
        return self._grouped(subject, FOLLOWER)

    def _stored_types(self, types) -> list:
        if isinstance(types, (str, type)):
            types = [types]
        return list(dict.fromkeys(self.stored_type(value) for value in types))

    def _related(self, subject, side, type=None, types=None):
        # side: which end of the edge the listed entities sit on
        subject_ref = self.entity_ref(subject)

        if types is not None:
            stored_types = self._stored_types(types)
            if not stored_types:
                return MixedResults()
            if len(stored_types) == 1:
                return self._single_type(subject_ref, side, stored_types[0])
            return self._merged(subject_ref, side, stored_types)

        if type is not None:
            return self._single_type(subject_ref, side, self.stored_type(type))

        stored_types = [
            stored_type
            for stored_type in follow_repository.distinct_values(
                f"{side}_type",
                **{other_side(side): subject_ref},
            )
            if self.model_for(stored_type) is not None
        ]
        if not stored_types:
            return MixedResults()
        if len(stored_types) == 1:
            return self._single_type(subject_ref, side, stored_types[0])
        return self._merged(subject_ref, side, stored_types)

    def _single_type(self, subject_ref, side, stored_type):
        canonical = self._canonical(stored_type)
        query = self.registry.query_for(canonical)
        if query is None:
            logger.debug("No entity model registered for %s", stored_type)
            return MixedResults()

        return FollowQuery(
            follow_repository.join_related(
                query,
                self.registry.primary_key_column(canonical),
                side,
                stored_type,
                subject_ref,
            )
        )

    def _merged(self, subject_ref, side, stored_types):
        scope = {other_side(side): subject_ref}
        ranked = []
        for stored_type in stored_types:
            listing = self._single_type(subject_ref, side, stored_type)
            if listing.is_materialized:
                continue

            entities = listing.all()
            followed_at = follow_repository.edge_timestamps(
                side,
                stored_type,
                [self.registry.key_of(entity) for entity in entities],
                **scope,
            )
            ranked.extend(
                (followed_at[self.registry.key_of(entity)], entity)
                for entity in entities
            )

        ranked.sort(key=lambda item: item[0], reverse=True)
        return MixedResults(entity for _, entity in ranked)

    def _grouped(self, subject, side) -> dict:
        ids_by_type = {}
        for related_type, related_id in follow_repository.select_pairs(
            side,
            **{other_side(side): self.entity_ref(subject)},
        ):
            ids_by_type.setdefault(related_type, []).append(related_id)

        grouped = {}
        for related_type, ids in ids_by_type.items():
            if self.model_for(related_type) is None:
                logger.debug("Skipping unregistered type %s", related_type)
                continue
            grouped[related_type] = self.registry.fetch_by_ids(self._canonical(related_type), ids)
        return grouped

    # mutual relationships

    def _pairs(self, subject, side, type=None) -> set:
        scope = {other_side(side): self.entity_ref(subject)}
        if type is not None:
            scope[f"{side}_type"] = self.stored_type(type)
        return set(follow_repository.select_pairs(side, **scope))

    def _fetch_pairs(self, pairs) -> list:
        # ids only mean something next to their type; ids collide across types
        ids_by_type = {}
        for related_type, related_id in sorted(pairs):
            ids_by_type.setdefault(related_type, []).append(related_id)

        entities = []
        for related_type, ids in ids_by_type.items():
            entities.extend(self.registry.fetch_by_ids(self._canonical(related_type), ids))
        return entities

    def mutual_followings(self, subject, other, type=None) -> list:
        shared = self._pairs(subject, FOLLOWABLE, type) & self._pairs(other, FOLLOWABLE, type)
        return self._fetch_pairs(shared)

    def mutual_followers(self, subject, other, type=None) -> list:
        shared = self._pairs(subject, FOLLOWER, type) & self._pairs(other, FOLLOWER, type)
        return self._fetch_pairs(shared)

    def mutual_connections(self, subject, type=None) -> list:
        if not self.registry.can_be_followed(subject):
            return []

        following = self._pairs(subject, FOLLOWABLE, type)
        if not following:
            return []
        return self._fetch_pairs(following & self._pairs(subject, FOLLOWER, type))

    # entity scopes

    def entities_following(self, model, target):
        """Entities of ``model`` that follow ``target``."""
        return self._scope(model, FOLLOWER, target)

    def entities_followed_by(self, model, follower):
        """Entities of ``model`` that ``follower`` follows."""
        return self._scope(model, FOLLOWABLE, follower)

    def _scope(self, model, side, counterpart):
        model_type = self.stored_type(model)
        counterpart_ref = self._normalize(model_type, counterpart)
        query = self.registry.query_for(self.registry.canonical_type_of(model))
        if query is None:
            query = db.session.query(model)

        if counterpart_ref.id is None:
            return query.filter(false())

        return query.filter(
            follow_repository.related_exists(
                self.registry.key_column_for(model),
                side,
                model_type,
                counterpart_ref,
            )
        )


_follow_service = None
_follow_service_signature = None
_follow_service_lock = Lock()


def _build_signature(registry):
    aliases = current_app.config.get("FOLLOW_TYPE_ALIASES") or {}
    return (
        registry,
        bool(current_app.config.get("FOLLOW_ALLOW_SELF_FOLLOW", False)),
        tuple(sorted(aliases.items())),
    )


def get_follow_service() -> FollowGraphService:
    global _follow_service, _follow_service_signature

    registry = get_entity_registry()
    signature = _build_signature(registry)
    with _follow_service_lock:
        if _follow_service is not None and _follow_service_signature == signature:
            return _follow_service

        _follow_service = FollowGraphService(
            registry,
            TypeAliasResolver.from_config(current_app.config),
            allow_self_follow=signature[1],
        )
        _follow_service_signature = signature
        return _follow_service
