"""
Tests for Citadel data records.
"""

from datetime import timedelta

from src.citadel.models import (
    AccessLevel, RoomAccess, RoomAttributes, ServerTime, UserRecord, Room
)


class TestEnums:
    """Test access level and room access constants."""

    def test_access_levels_are_ordered(self):
        levels = list(AccessLevel)
        assert [int(level) for level in levels] == list(range(7))
        assert AccessLevel.DELETED_USER < AccessLevel.NEW_USER < AccessLevel.AIDE
        assert AccessLevel.AIDE == 6

    def test_room_access_values(self):
        assert RoomAccess.PUBLIC == 0
        assert RoomAccess.PRIVATE_PASSWORD == 2
        assert RoomAccess.PERSONAL == 4


class TestRecords:
    """Test record helpers."""

    def test_room_attributes_defaults(self):
        attrs = RoomAttributes()
        assert attrs.access == RoomAccess.PUBLIC
        assert attrs.password == ""
        assert attrs.default_view == ""

    def test_user_record_to_fields(self):
        user = UserRecord("RobertBarta", "ggg", 10768, 1, 0, 4, 4, 1191255938, 0)
        assert "|".join(user.to_fields()) == "RobertBarta|ggg|10768|1|0|4|4|1191255938|0"

    def test_user_record_to_fields_with_enum_level(self):
        user = UserRecord("RobertBarta", "ggg", 10768, 1, 0, 4, 4, 1191255938, 0)
        user.access_level = int(AccessLevel.AIDE)
        assert user.to_fields()[5] == "6"

    def test_field_counts(self):
        assert UserRecord.field_count() == 9
        assert Room.field_count() == 9

    def test_server_time_int(self):
        server_time = ServerTime(1347625545, -14400, True, 1347537300)
        assert int(server_time) == 1347625545

    def test_server_time_datetime(self):
        server_time = ServerTime(1347625545, -14400, True, 1347537300)
        moment = server_time.as_datetime
        assert moment.utcoffset() == timedelta(hours=-4)
        assert moment.timestamp() == 1347625545
