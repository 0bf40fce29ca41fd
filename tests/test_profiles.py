"""Tests for device profiles"""

import pytest

from filterspector.profiles import CANEDGE, MASK_ONLY, SplitCapacity, CombinedCapacity, profile_for_device, detect_profile


class TestDeviceProfile:

    def test_channel_keys(self):
        assert CANEDGE.config_key(9) == "can_internal"
        assert CANEDGE.channel_for_key("can_2") == 2
        assert MASK_ONLY.config_key(9) is None
        assert MASK_ONLY.channel_for_key("can_internal") is None

    def test_get_rules(self):
        document = {"can_1": {"filter": {"id": [{"f1": "1"}]}}, "can_2": {"filter": {}}}
        assert CANEDGE.get_rules(document, 1) == [{"f1": "1"}]
        assert CANEDGE.get_rules(document, 2) is None
        assert CANEDGE.get_rules(document, 9) is None
        assert CANEDGE.get_rules(document, 5) is None

    def test_set_rules_creates_path(self):
        document = {"can_1": {"phy": {"mode": 0}}}
        MASK_ONLY.set_rules(document, 1, [{"f1": "1"}])
        assert document == {"can_1": {"phy": {"mode": 0, "filter": [{"f1": "1"}]}}}

    def test_set_rules_on_unmapped_channel(self):
        with pytest.raises(KeyError):
            MASK_ONLY.set_rules({}, 9, [])

    @pytest.mark.parametrize("value,expected", [(None, False), (0, False), (1, True), (True, True)])
    def test_remote_frames_enabled(self, value, expected):
        filter_section = {"id": []}
        if value is not None:
            filter_section["remote_frames"] = value
        assert CANEDGE.remote_frames_enabled({"can_1": {"filter": filter_section}}, 1) is expected

    def test_mask_only_has_no_remote_policy(self):
        assert MASK_ONLY.remote_frames_enabled({"can_1": {"phy": {"filter": []}}}, 1) is None


class TestCapacity:

    def test_split(self):
        assert SplitCapacity().checks(3, 4) == [("11-bit", 3, 128), ("29-bit", 4, 64)]

    def test_combined(self):
        assert CombinedCapacity().checks(3, 4) == [("total", 7, 64)]


class TestProfileSelection:

    @pytest.mark.parametrize("name,profile", [
        ("CANedge2", CANEDGE),
        ("canedge1 GNSS", CANEDGE),
        ("CANmod.router", MASK_ONLY),
        ("CANmod.gps", MASK_ONLY),
    ])
    def test_profile_for_device(self, name, profile):
        assert profile_for_device(name) is profile

    @pytest.mark.parametrize("name", ["", None, "CANlogger"])
    def test_unknown_device(self, name):
        with pytest.raises(ValueError):
            profile_for_device(name)

    def test_detect_profile(self):
        assert detect_profile({"can_2": {"phy": {"filter": []}}}) is MASK_ONLY
        assert detect_profile({"can_1": {"filter": {"id": []}}}) is CANEDGE
        assert detect_profile({}) is CANEDGE
