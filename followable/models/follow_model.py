from datetime import datetime, timezone

from followable.config import Config
from followable.db import db


# fixed at import; create_app rejects overrides that differ
FOLLOW_TABLE_NAME = Config.FOLLOW_TABLE_NAME


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Follow(db.Model):
    __tablename__ = FOLLOW_TABLE_NAME

    id = db.Column(db.Integer, primary_key=True)
    follower_id = db.Column(db.Integer, nullable=False)
    follower_type = db.Column(db.String(200), nullable=False)
    followable_id = db.Column(db.Integer, nullable=False)
    followable_type = db.Column(db.String(200), nullable=False)

    # "metadata" is reserved on declarative classes
    metadata_ = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        db.UniqueConstraint(
            "follower_id",
            "follower_type",
            "followable_id",
            "followable_type",
            name=f"{FOLLOW_TABLE_NAME}_unique",
        ),
        db.Index(
            f"{FOLLOW_TABLE_NAME}_followable_idx",
            "followable_type",
            "followable_id",
        ),
        db.Index(
            f"{FOLLOW_TABLE_NAME}_follower_idx",
            "follower_type",
            "follower_id",
        ),
        db.Index(f"{FOLLOW_TABLE_NAME}_created_idx", "created_at"),
    )

    def __repr__(self):
        return (
            f"<Follow {self.follower_type}:{self.follower_id} -> "
            f"{self.followable_type}:{self.followable_id}>"
        )

    def to_dict(self):
        from followable.schemas.follow_schema import follow_record_schema

        return follow_record_schema.dump(self)
