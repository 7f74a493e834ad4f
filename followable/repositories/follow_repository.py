import logging

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError

from followable.db import db
from followable.models.follow_model import Follow


logger = logging.getLogger(__name__)

FOLLOWER = "follower"
FOLLOWABLE = "followable"


def other_side(side: str) -> str:
    return FOLLOWABLE if side == FOLLOWER else FOLLOWER


def side_columns(side: str):
    if side == FOLLOWER:
        return Follow.follower_type, Follow.follower_id
    if side == FOLLOWABLE:
        return Follow.followable_type, Follow.followable_id
    raise ValueError(f"Unknown edge side: {side}")


def _criteria(follower=None, followable=None, follower_type=None, followable_type=None):
    criteria = []
    if follower is not None:
        criteria += [
            Follow.follower_type == follower[0],
            Follow.follower_id == follower[1],
        ]
    if followable is not None:
        criteria += [
            Follow.followable_type == followable[0],
            Follow.followable_id == followable[1],
        ]
    if follower_type is not None:
        criteria.append(Follow.follower_type == follower_type)
    if followable_type is not None:
        criteria.append(Follow.followable_type == followable_type)
    return criteria


def _recent_first(query):
    return query.order_by(Follow.created_at.desc(), Follow.id.desc())


def get_follow(follower, followable):
    return Follow.query.filter(*_criteria(follower, followable)).first()


def follow_exists(follower, followable) -> bool:
    return get_follow(follower, followable) is not None


def create_follow(follower, followable, metadata=None):
    """Insert one edge and commit.

    Returns ``None`` when the unique constraint rejects the row because an
    identical edge was committed in the meantime; any other integrity
    failure propagates.
    """
    follow = Follow(
        follower_type=follower[0],
        follower_id=follower[1],
        followable_type=followable[0],
        followable_id=followable[1],
        metadata_=dict(metadata or {}),
    )
    db.session.add(follow)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if follow_exists(follower, followable):
            logger.warning(
                "Duplicate follow %s:%s -> %s:%s absorbed",
                follower[0], follower[1], followable[0], followable[1],
            )
            return None
        raise

    logger.debug("Follow %s created", follow.id)
    return follow


def delete_follow(follower, followable) -> int:
    deleted = (
        Follow.query
        .filter(*_criteria(follower, followable))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    if deleted:
        logger.debug(
            "Removed follow %s:%s -> %s:%s",
            follower[0], follower[1], followable[0], followable[1],
        )
    return deleted


def update_follow_metadata(follow, metadata):
    follow.metadata_ = dict(metadata or {})
    db.session.commit()
    return follow


def count_follows(**scope) -> int:
    return Follow.query.filter(*_criteria(**scope)).count()


def distinct_values(column: str, **scope) -> list:
    attribute = getattr(Follow, column)
    rows = (
        db.session.query(attribute)
        .filter(*_criteria(**scope))
        .distinct()
        .order_by(attribute.asc())
        .all()
    )
    return [row[0] for row in rows]


def select_follows(columns, limit=None, offset=None, **scope):
    query = _recent_first(
        db.session.query(*[getattr(Follow, column) for column in columns])
        .filter(*_criteria(**scope))
    )
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def select_pairs(side: str, **scope) -> list:
    """(type, id) pairs on ``side`` of the matching edges, most recent first."""
    return [
        (row[0], row[1])
        for row in select_follows(
            [f"{side}_type", f"{side}_id"],
            **scope,
        )
    ]


def follow_records(**scope):
    return _recent_first(Follow.query.filter(*_criteria(**scope)))


def edge_timestamps(side: str, related_type: str, related_ids, **scope) -> dict:
    """Map related id -> (created_at, edge id) for edges pointing at one type."""
    type_column, id_column = side_columns(side)
    related_ids = list(related_ids)
    if not related_ids:
        return {}

    rows = (
        db.session.query(id_column, Follow.created_at, Follow.id)
        .filter(*_criteria(**scope))
        .filter(type_column == related_type, id_column.in_(related_ids))
        .all()
    )
    return {row[0]: (row[1], row[2]) for row in rows}


def join_related(query, key_column, side: str, related_type: str, subject):
    """Join entities on ``side`` of the edges whose other side is ``subject``."""
    type_column, id_column = side_columns(side)
    subject_type, subject_id = side_columns(other_side(side))

    return _recent_first(
        query
        .join(
            Follow,
            and_(id_column == key_column, type_column == related_type),
        )
        .filter(subject_type == subject[0], subject_id == subject[1])
    )


def related_exists(key_column, side: str, related_type: str, counterpart):
    """EXISTS clause: an edge links the entity on ``side`` to ``counterpart``."""
    type_column, id_column = side_columns(side)
    counterpart_type, counterpart_id = side_columns(other_side(side))

    return exists().where(
        id_column == key_column,
        type_column == related_type,
        counterpart_type == counterpart[0],
        counterpart_id == counterpart[1],
    )
