"""
Unit tests for the order tag codec.
Tests marker classification, decoding, encoding and normalization.
"""

import pytest

from app.services.tag_codec import (
    DeliveredMarker,
    NotificationMarker,
    NotifiedMarker,
    PlainTag,
    SentImageMarker,
    TimerMarker,
    decode,
    encode,
    is_transient,
    normalized,
    parse_tag,
    split_tags,
    to_tag_list,
)


class TestParseTag:
    """Test single-token classification."""

    def test_notification(self):
        assert parse_tag("notification") == NotificationMarker()

    def test_notified(self):
        assert parse_tag("notified") == NotifiedMarker()

    def test_delivered(self):
        assert parse_tag("Entregue") == DeliveredMarker()

    def test_delivered_is_case_sensitive(self):
        assert parse_tag("entregue") == PlainTag("entregue")

    def test_timer(self):
        assert parse_tag("timer:1700000000000") == TimerMarker(1700000000000)

    def test_malformed_timer_is_kept_verbatim(self):
        assert parse_tag("timer:soon") == PlainTag("timer:soon")

    @pytest.mark.parametrize("token", ["timer:²", "timer:١٢٣", "timer:-5", "timer:"])
    def test_non_ascii_or_signed_timer_is_kept_verbatim(self, token):
        assert parse_tag(token) == PlainTag(token)

    def test_sent_image(self):
        assert parse_tag("sent:img:ord-A.png") == SentImageMarker("ord-A.png")

    def test_empty_sent_image_is_plain(self):
        assert parse_tag("sent:img:") == PlainTag("sent:img:")

    def test_unknown_passes_through(self):
        assert parse_tag("VIP") == PlainTag("VIP")


class TestDecode:
    """Test decoding of full tag strings."""

    def test_empty_string_decodes_to_empty_state(self):
        state = decode("")
        assert state.markers == ()
        assert state.has_notification is False
        assert state.timer_deadline is None
        assert state.sent_markers == frozenset()
        assert state.is_notified is False
        assert state.is_delivered is False

    def test_none_decodes_to_empty_state(self):
        assert decode(None).markers == ()

    def test_full_tag_string(self):
        state = decode("VIP, notification, timer:1700000000000, sent:img:a.png, notified")
        assert state.has_notification is True
        assert state.timer_deadline == 1700000000000
        assert state.sent_markers == frozenset({"a.png"})
        assert state.is_notified is True
        assert state.is_delivered is False
        assert PlainTag("VIP") in state.markers

    def test_delivered_flag(self):
        assert decode("Entregue").is_delivered is True

    def test_accepts_list_of_tags(self):
        state = decode(["notification", "sent:img:b.png"])
        assert state.has_notification is True
        assert state.has_sent("b.png")

    def test_duplicates_collapse(self):
        state = decode("VIP, VIP, notification, notification")
        assert state.to_tags() == ["VIP", "notification"]

    def test_latest_timer_wins(self):
        state = decode("timer:100, timer:300, timer:200")
        assert state.timer_deadline == 300

    def test_whitespace_is_trimmed(self):
        state = decode("  notification ,sent:img:a.png  ")
        assert state.to_tags() == ["notification", "sent:img:a.png"]

    def test_odd_timer_token_does_not_break_decoding(self):
        state = decode("VIP, timer:², notification")
        assert state.timer_deadline is None
        assert state.has_notification is True
        assert state.to_tags() == ["VIP", "timer:²", "notification"]


class TestEncode:
    """Test serialization and round-trip stability."""

    def test_encode_joins_with_comma_space(self):
        markers = [PlainTag("VIP"), NotificationMarker(), TimerMarker(42)]
        assert encode(markers) == "VIP, notification, timer:42"

    def test_encode_empty(self):
        assert encode([]) == ""

    @pytest.mark.parametrize("tags", [
        "",
        "VIP",
        "notification, timer:1700000000000",
        "sent:img:a.png, sent:img:b.png, notified, Entregue",
        "wholesale, timer:oops, sent:img:x.png",
    ])
    def test_round_trip_preserves_marker_set(self, tags):
        state = decode(tags)
        again = decode(encode(state.markers))
        assert set(again.markers) == set(state.markers)
        assert again == state

    def test_to_tag_list_drops_duplicates(self):
        assert to_tag_list([NotificationMarker(), NotificationMarker()]) == ["notification"]


class TestHelpers:
    def test_normalized_is_order_insensitive(self):
        assert normalized(["b", "a", "c"]) == normalized(["c", "b", "a"])

    def test_normalized_ignores_duplicates_and_blanks(self):
        assert normalized(["a", "a", " ", "b"]) == ("a", "b")

    def test_transient_markers(self):
        assert is_transient(NotificationMarker())
        assert is_transient(TimerMarker(1))
        assert is_transient(SentImageMarker("a.png"))
        assert is_transient(NotifiedMarker())
        assert not is_transient(DeliveredMarker())
        assert not is_transient(PlainTag("VIP"))

    def test_split_tags_trims_and_drops_blanks(self):
        assert split_tags(" VIP ,, notification ,") == ["VIP", "notification"]

    def test_split_tags_accepts_none_and_lists(self):
        assert split_tags(None) == []
        assert split_tags(["a", " b ", ""]) == ["a", "b"]
