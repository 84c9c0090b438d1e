"""
Unit tests for the order webhook models.
Tests snapshot building from the webhook payload.
"""

from app.models.order import OrderSnapshot, OrderWebhookPayload, normalize_locale


def _payload(**overrides) -> OrderWebhookPayload:
    fields = {
        "admin_graphql_api_id": "gid://shopify/Order/1",
        "name": "#1001",
        "financial_status": "paid",
        "line_items": [{"quantity": 2}, {"quantity": 1}],
    }
    fields.update(overrides)
    return OrderWebhookPayload.model_validate(fields)


class TestOrderSnapshot:
    def test_tags_are_split_trimmed_and_deduplicated(self):
        snapshot = OrderSnapshot.from_payload(
            _payload(tags="VIP,  notification ,, VIP, timer:²")
        )
        assert snapshot.tags == ("VIP", "notification", "timer:²")

    def test_missing_tags(self):
        snapshot = OrderSnapshot.from_payload(_payload(tags=None))
        assert snapshot.tags == ()

    def test_line_item_count_sums_quantities(self):
        assert OrderSnapshot.from_payload(_payload()).line_item_count == 3

    def test_blank_note_value_is_pending(self):
        snapshot = OrderSnapshot.from_payload(
            _payload(note_attributes=[{"name": "img", "value": "  "}])
        )
        assert snapshot.attachments[0].file_ref is None

    def test_is_paid(self):
        assert OrderSnapshot.from_payload(_payload()).is_paid is True
        assert OrderSnapshot.from_payload(_payload(financial_status="pending")).is_paid is False


class TestNormalizeLocale:
    def test_portuguese(self):
        assert normalize_locale("pt-PT") == "pt"
        assert normalize_locale("pt") == "pt"

    def test_fallback_to_english(self):
        assert normalize_locale("fr") == "en"
        assert normalize_locale(None) == "en"
