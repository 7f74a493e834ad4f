from followable.extensions.extensions import ma


class FollowRecordSchema(ma.Schema):
    id = ma.Int()
    follower_type = ma.Str()
    follower_id = ma.Int()
    followable_type = ma.Str()
    followable_id = ma.Int()
    metadata_ = ma.Method("get_metadata", data_key="metadata")
    created_at = ma.DateTime()
    updated_at = ma.DateTime()

    def get_metadata(self, follow):
        return follow.metadata_ or {}


follow_record_schema = FollowRecordSchema()
follow_records_schema = FollowRecordSchema(many=True)
