"""
Tests for the action schema registry.
"""

import pytest

from shopagent.core.action_schema import (
    ALLOWED_ACTIONS,
    BLOCKED_ACTIONS,
    MAX_ACTIONS_PER_REQUEST,
    ActionKind,
    ActionSchema,
    PrimitiveType,
    check_disjoint,
    get_action_schema_prompt,
    is_blocked,
    lookup,
    snapshot_collections,
)


class TestRegistry:
    """The registry declares exactly the eight supported kinds."""

    def test_every_kind_has_a_schema(self):
        assert set(ALLOWED_ACTIONS) == set(ActionKind)
        assert len(ALLOWED_ACTIONS) == 8

    def test_blocklist_and_whitelist_are_disjoint(self):
        allowed = {k.value for k in ALLOWED_ACTIONS}
        assert not allowed & BLOCKED_ACTIONS
        assert "delete_product" in BLOCKED_ACTIONS
        assert "modify_checkout" in BLOCKED_ACTIONS

    def test_create_kinds_have_no_target(self):
        for schema in ALLOWED_ACTIONS.values():
            if schema.creates_record:
                assert schema.target_field is None
            else:
                assert schema.target_field in schema.required

    def test_required_fields(self):
        assert ALLOWED_ACTIONS[ActionKind.CREATE_PAGE].required == {"title", "content"}
        assert ALLOWED_ACTIONS[ActionKind.ADJUST_PRICE].required == {"product_id", "new_price"}
        assert ALLOWED_ACTIONS[ActionKind.GENERATE_SEO].required == {"product_id", "meta_title", "meta_description"}

    def test_overlap_rejected(self):
        with pytest.raises(RuntimeError, match="create_page"):
            check_disjoint(ALLOWED_ACTIONS, BLOCKED_ACTIONS | {"delete_product", "create_page"})

    def test_registry_passes_check(self):
        check_disjoint(ALLOWED_ACTIONS, BLOCKED_ACTIONS)

    def test_max_actions(self):
        assert MAX_ACTIONS_PER_REQUEST == 50


class TestLookup:

    def test_lookup_known_kind(self):
        schema = lookup("update_page")
        assert schema.kind is ActionKind.UPDATE_PAGE
        assert schema.collection == "pages"

    def test_lookup_unknown_kind(self):
        assert lookup("transfer_funds") is None
        assert lookup("delete_product") is None

    def test_is_blocked(self):
        assert is_blocked("delete_store")
        assert not is_blocked("create_page")

    def test_snapshot_collections(self):
        assert snapshot_collections() == ["products", "pages", "themes"]


class TestSchemaDeclaration:

    def test_overlapping_required_and_optional_rejected(self):
        with pytest.raises(ValueError, match="both required and optional"):
            ActionSchema(
                kind=ActionKind.CREATE_PAGE,
                description="bad",
                required=frozenset({"title"}),
                optional=frozenset({"title"}),
                field_types={},
                collection="pages",
                creates_record=True,
            )

    def test_types_for_undeclared_fields_rejected(self):
        with pytest.raises(ValueError, match="unknown fields"):
            ActionSchema(
                kind=ActionKind.CREATE_PAGE,
                description="bad",
                required=frozenset({"title"}),
                optional=frozenset(),
                field_types={"title": PrimitiveType.STRING, "color": PrimitiveType.STRING},
                collection="pages",
                creates_record=True,
            )


def test_schema_prompt_lists_allowed_and_forbidden_kinds():
    prompt = get_action_schema_prompt()
    for kind in ActionKind:
        assert kind.value in prompt
    assert "NEVER allowed" in prompt
    assert "delete_all_products" in prompt
