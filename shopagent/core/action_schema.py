"""
Action schema registry - the closed set of store mutations the generator may request.
Anything not declared here is rejected by the validator; blocked kinds are named explicitly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional


class ActionKind(str, Enum):
    CREATE_PRODUCT = "create_product"
    UPDATE_PRODUCT = "update_product"
    CREATE_PAGE = "create_page"
    UPDATE_PAGE = "update_page"
    CREATE_COLLECTION = "create_collection"
    ADJUST_PRICE = "adjust_price"
    GENERATE_SEO = "generate_seo"
    SET_ACTIVE_THEME = "set_active_theme"


class PrimitiveType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    ARRAY = "array"


@dataclass(frozen=True)
class ActionSchema:
    """Static declaration of one action kind.

    `creates_record` marks kinds that add a new record (never reversed).
    In-place kinds name the snapshot collection and the field holding the
    target record id so undo/redo can find the record's prior values.
    """
    kind: ActionKind
    description: str
    required: FrozenSet[str]
    optional: FrozenSet[str]
    field_types: Dict[str, PrimitiveType]
    collection: str
    creates_record: bool = False
    target_field: Optional[str] = None

    def __post_init__(self):
        overlap = self.required & self.optional
        if overlap:
            raise ValueError(f"{self.kind.value}: fields both required and optional: {sorted(overlap)}")
        undeclared = set(self.field_types) - (self.required | self.optional)
        if undeclared:
            raise ValueError(f"{self.kind.value}: types declared for unknown fields: {sorted(undeclared)}")

    @property
    def fields(self) -> FrozenSet[str]:
        return self.required | self.optional


S = PrimitiveType.STRING
N = PrimitiveType.NUMBER
A = PrimitiveType.ARRAY

ALLOWED_ACTIONS: Dict[ActionKind, ActionSchema] = {
    schema.kind: schema
    for schema in (
        ActionSchema(
            kind=ActionKind.CREATE_PRODUCT,
            description="Create a new product in the store",
            required=frozenset({"title"}),
            optional=frozenset({"description", "price", "vendor", "product_type", "tags", "images", "image_prompts"}),
            field_types={
                "title": S, "description": S, "price": N, "vendor": S,
                "product_type": S, "tags": S, "images": A, "image_prompts": A,
            },
            collection="products",
            creates_record=True,
        ),
        ActionSchema(
            kind=ActionKind.UPDATE_PRODUCT,
            description="Update an existing product",
            required=frozenset({"product_id"}),
            optional=frozenset({"title", "description", "price", "vendor", "product_type", "tags"}),
            field_types={
                "product_id": N, "title": S, "description": S, "price": N,
                "vendor": S, "product_type": S, "tags": S,
            },
            collection="products",
            target_field="product_id",
        ),
        ActionSchema(
            kind=ActionKind.CREATE_PAGE,
            description="Create a new page (About Us, Contact, etc.)",
            required=frozenset({"title", "content"}),
            optional=frozenset(),
            field_types={"title": S, "content": S},
            collection="pages",
            creates_record=True,
        ),
        ActionSchema(
            kind=ActionKind.UPDATE_PAGE,
            description="Update an existing page",
            required=frozenset({"page_id"}),
            optional=frozenset({"title", "content"}),
            field_types={"page_id": N, "title": S, "content": S},
            collection="pages",
            target_field="page_id",
        ),
        ActionSchema(
            kind=ActionKind.CREATE_COLLECTION,
            description="Create a new product collection",
            required=frozenset({"title"}),
            optional=frozenset({"description", "sort_order"}),
            field_types={"title": S, "description": S, "sort_order": S},
            collection="collections",
            creates_record=True,
        ),
        ActionSchema(
            kind=ActionKind.ADJUST_PRICE,
            description="Change the price of a product",
            required=frozenset({"product_id", "new_price"}),
            optional=frozenset(),
            field_types={"product_id": N, "new_price": N},
            collection="products",
            target_field="product_id",
        ),
        ActionSchema(
            kind=ActionKind.GENERATE_SEO,
            description="Generate SEO metadata for a product",
            required=frozenset({"product_id", "meta_title", "meta_description"}),
            optional=frozenset(),
            field_types={"product_id": N, "meta_title": S, "meta_description": S},
            collection="products",
            target_field="product_id",
        ),
        ActionSchema(
            kind=ActionKind.SET_ACTIVE_THEME,
            description="Set the active/published theme for the store (switch theme)",
            required=frozenset({"theme_id"}),
            optional=frozenset(),
            field_types={"theme_id": N},
            collection="themes",
            target_field="theme_id",
        ),
    )
}

# Kinds that are never allowed, whatever fields they carry
BLOCKED_ACTIONS: FrozenSet[str] = frozenset({
    "delete_product",
    "delete_all_products",
    "delete_page",
    "delete_all_pages",
    "delete_collection",
    "delete_store",
    "modify_admin_settings",
    "delete_customer",
    "modify_checkout",
})

# Maximum actions accepted in a single batch
MAX_ACTIONS_PER_REQUEST = 50

# Longest title the store accepts
MAX_TITLE_LENGTH = 255


def check_disjoint(allowed, blocked) -> None:
    """Raise RuntimeError when a kind is both whitelisted and blocked."""
    overlap = set(blocked) & {k.value for k in allowed}
    if overlap:
        raise RuntimeError(f"Action kinds both allowed and blocked: {sorted(overlap)}")


check_disjoint(ALLOWED_ACTIONS, BLOCKED_ACTIONS)


def lookup(kind: str) -> Optional[ActionSchema]:
    """Return the schema for a kind, or None when the kind is not whitelisted."""
    try:
        return ALLOWED_ACTIONS[ActionKind(kind)]
    except ValueError:
        return None


def is_blocked(kind: str) -> bool:
    return kind in BLOCKED_ACTIONS


def snapshot_collections() -> List[str]:
    """Collections an undo/redo may need, in a stable order."""
    names = []
    for schema in ALLOWED_ACTIONS.values():
        if schema.target_field and schema.collection not in names:
            names.append(schema.collection)
    return names


def get_action_schema_prompt() -> str:
    """Describe allowed and forbidden kinds for the action generator's system prompt."""
    prompt = "You may ONLY return actions from this list:\n\n"

    for kind, schema in ALLOWED_ACTIONS.items():
        prompt += f"- **{kind.value}**: {schema.description}\n"
        prompt += f"  Required fields: {', '.join(sorted(schema.required))}\n"
        if schema.optional:
            prompt += f"  Optional fields: {', '.join(sorted(schema.optional))}\n"
        prompt += "\n"

    prompt += "\nYou are NEVER allowed to:\n"
    for kind in sorted(BLOCKED_ACTIONS):
        prompt += f"- {kind}\n"

    return prompt
