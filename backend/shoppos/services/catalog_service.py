# Overview: Service-layer operations for the catalog; products, categories, brands and refill options.

"""
Catalog Service

Categories form a two-level tree: a root category and its sub-categories.
The depth rule is enforced here on every create/update:
- a parent must itself be a root
- a category with children cannot be given a parent
- a category cannot be its own parent

Deleting a category with children is rejected (ConflictError); the caller
deletes or re-parents the children first. Deleting a leaf detaches its
products.

Brands referenced by products cannot be deleted. Products referenced by
sale items cannot be deleted; sales keep a name snapshot but the link is
kept for reporting.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import or_

from ..extensions import db
from ..models import Brand, Category, Product, RefillOption, SaleItem
from ..validation import ConflictError, ValidationError, require_text
from .activity_service import log_activity
from . import settings_service


PRODUCT_MUTABLE_FIELDS = {
    "name", "barcode", "category_id", "brand_id",
    "buying_price", "selling_price", "stock_quantity", "low_stock_threshold",
}
CATEGORY_MUTABLE_FIELDS = {"name", "description", "parent_id"}
REFILL_MUTABLE_FIELDS = {"name", "volume_ml", "default_price", "is_active"}


# ---------------------------------------------------------------------------
# Category tree
# ---------------------------------------------------------------------------

@dataclass
class CategoryNode:
    id: int
    name: str
    parent_id: int | None
    description: str | None = None
    children: list[int] = field(default_factory=list)


class CategoryTree:
    """
    Arena of category nodes with parent and children indices.

    Built from rows once per request; read-only afterwards.
    """

    def __init__(self, categories):
        self.nodes: dict[int, CategoryNode] = {}
        for c in categories:
            self.nodes[c.id] = CategoryNode(
                id=c.id, name=c.name, parent_id=c.parent_id, description=c.description
            )
        for node in self.nodes.values():
            parent = self.nodes.get(node.parent_id) if node.parent_id is not None else None
            if parent is not None:
                parent.children.append(node.id)

    @classmethod
    def load(cls) -> "CategoryTree":
        return cls(db.session.query(Category).order_by(Category.name.asc()).all())

    def __contains__(self, category_id) -> bool:
        return category_id in self.nodes

    def roots(self) -> list[CategoryNode]:
        return [n for n in self.nodes.values() if n.parent_id is None or n.parent_id not in self.nodes]

    def children(self, category_id: int) -> list[CategoryNode]:
        node = self.nodes.get(category_id)
        if node is None:
            return []
        return [self.nodes[child_id] for child_id in node.children]

    def has_children(self, category_id: int) -> bool:
        node = self.nodes.get(category_id)
        return bool(node and node.children)

    def is_root(self, category_id: int) -> bool:
        node = self.nodes.get(category_id)
        return node is not None and node.parent_id is None

    def self_and_descendants(self, category_id: int) -> set[int]:
        """Ids used to filter products by a main category."""
        if category_id not in self.nodes:
            return set()
        ids = {category_id}
        stack = list(self.nodes[category_id].children)
        while stack:
            current = stack.pop()
            if current in ids:
                continue
            ids.add(current)
            stack.extend(self.nodes[current].children)
        return ids

    def to_list(self) -> list[dict]:
        """Roots with nested sub-categories, both sorted by name."""
        result = []
        for root in sorted(self.roots(), key=lambda n: n.name.lower()):
            result.append({
                "id": root.id,
                "name": root.name,
                "description": root.description,
                "parent_id": None,
                "children": [
                    {
                        "id": child.id,
                        "name": child.name,
                        "description": child.description,
                        "parent_id": root.id,
                    }
                    for child in sorted(self.children(root.id), key=lambda n: n.name.lower())
                ],
            })
        return result


def _check_parent(tree: CategoryTree, category_id: int | None, parent_id: int | None) -> None:
    if parent_id is None:
        return
    if parent_id not in tree:
        raise ValidationError("Parent category not found")
    if category_id is not None and parent_id == category_id:
        raise ValidationError("A category cannot be its own parent")
    if not tree.is_root(parent_id):
        raise ValidationError("Sub-categories cannot have their own sub-categories")
    if category_id is not None and tree.has_children(category_id):
        raise ValidationError("A category with sub-categories cannot become a sub-category")


def _ensure_category_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Category).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("A category with this name already exists")


def list_categories() -> dict:
    tree = CategoryTree.load()
    return {
        "items": [c.to_dict() for c in db.session.query(Category).order_by(Category.name.asc()).all()],
        "tree": tree.to_list(),
    }


def create_category(*, patch: dict, actor_user_id: int | None = None) -> Category:
    name = require_text(patch.get("name"), "name")
    _ensure_category_name_free(name)
    parent_id = patch.get("parent_id")
    _check_parent(CategoryTree.load(), None, parent_id)

    category = Category(name=name, description=patch.get("description"), parent_id=parent_id)
    db.session.add(category)
    db.session.flush()

    log_activity(
        user_id=actor_user_id,
        action="category.created",
        entity_type="category",
        entity_id=category.id,
        details={"name": name, "parent_id": parent_id},
    )
    db.session.commit()
    return category


def update_category(*, category_id: int, patch: dict, actor_user_id: int | None = None) -> Category | None:
    category = db.session.get(Category, category_id)
    if category is None:
        return None

    patch = dict(patch)
    if "name" in patch:
        patch["name"] = require_text(patch["name"], "name")
        _ensure_category_name_free(patch["name"], exclude_id=category_id)
    if "parent_id" in patch:
        _check_parent(CategoryTree.load(), category_id, patch["parent_id"])

    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS:
            setattr(category, k, v)

    log_activity(
        user_id=actor_user_id,
        action="category.updated",
        entity_type="category",
        entity_id=category_id,
        details={k: v for k, v in patch.items() if k in CATEGORY_MUTABLE_FIELDS},
    )
    db.session.commit()
    return category


def delete_category(*, category_id: int, actor_user_id: int | None = None) -> bool:
    """
    Delete a leaf category. Its products keep existing without a category.

    Raises:
        ConflictError: the category still has sub-categories
    """
    category = db.session.get(Category, category_id)
    if category is None:
        return False

    child_count = db.session.query(Category).filter_by(parent_id=category_id).count()
    if child_count:
        raise ConflictError(
            "Cannot delete category with sub-categories. Delete or move them first."
        )

    db.session.query(Product).filter_by(category_id=category_id).update(
        {Product.category_id: None}, synchronize_session=False
    )
    log_activity(
        user_id=actor_user_id,
        action="category.deleted",
        entity_type="category",
        entity_id=category_id,
        details={"name": category.name},
    )
    db.session.delete(category)
    db.session.commit()
    return True


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------

def _ensure_brand_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Brand).filter(db.func.lower(Brand.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Brand.id != exclude_id)
    if q.first():
        raise ConflictError("A brand with this name already exists")


def list_brands() -> list[dict]:
    return [b.to_dict() for b in db.session.query(Brand).order_by(Brand.name.asc()).all()]


def create_brand(*, name, actor_user_id: int | None = None) -> Brand:
    name = require_text(name, "name")
    _ensure_brand_name_free(name)
    brand = Brand(name=name)
    db.session.add(brand)
    db.session.flush()
    log_activity(
        user_id=actor_user_id,
        action="brand.created",
        entity_type="brand",
        entity_id=brand.id,
        details={"name": name},
    )
    db.session.commit()
    return brand


def rename_brand(*, brand_id: int, name, actor_user_id: int | None = None) -> Brand | None:
    brand = db.session.get(Brand, brand_id)
    if brand is None:
        return None
    name = require_text(name, "name")
    _ensure_brand_name_free(name, exclude_id=brand_id)
    previous = brand.name
    brand.name = name
    log_activity(
        user_id=actor_user_id,
        action="brand.updated",
        entity_type="brand",
        entity_id=brand_id,
        details={"name": name, "previous_name": previous},
    )
    db.session.commit()
    return brand


def delete_brand(*, brand_id: int, actor_user_id: int | None = None) -> bool:
    brand = db.session.get(Brand, brand_id)
    if brand is None:
        return False
    in_use = db.session.query(Product).filter_by(brand_id=brand_id).count()
    if in_use:
        raise ConflictError("Cannot delete brand that is used by products")
    log_activity(
        user_id=actor_user_id,
        action="brand.deleted",
        entity_type="brand",
        entity_id=brand_id,
        details={"name": brand.name},
    )
    db.session.delete(brand)
    db.session.commit()
    return True


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_references(patch: dict) -> None:
    if patch.get("category_id") is not None and db.session.get(Category, patch["category_id"]) is None:
        raise ValidationError("Category not found")
    if patch.get("brand_id") is not None and db.session.get(Brand, patch["brand_id"]) is None:
        raise ValidationError("Brand not found")


def _ensure_barcode_free(barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = db.session.query(Product).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise ConflictError("Barcode already exists")


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    brand_id: int | None = None,
    low_stock_only: bool = False,
    include_buying_price: bool = True,
) -> dict:
    """
    Product listing with the filters of the inventory and POS screens.

    category_id matches the category and its sub-categories. search is a
    case-insensitive substring match on name or barcode.
    """
    q = db.session.query(Product)

    if search:
        pattern = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            db.func.lower(Product.name).like(pattern),
            db.func.lower(db.func.coalesce(Product.barcode, "")).like(pattern),
        ))

    if category_id is not None:
        ids = CategoryTree.load().self_and_descendants(category_id)
        if not ids:
            return {"items": [], "count": 0}
        q = q.filter(Product.category_id.in_(ids))

    if brand_id is not None:
        q = q.filter(Product.brand_id == brand_id)

    if low_stock_only:
        q = q.filter(Product.stock_quantity <= Product.low_stock_threshold)

    products = q.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict(include_buying_price=include_buying_price) for p in products],
        "count": len(products),
    }


def create_product(*, patch: dict, actor_user_id: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    low_stock_threshold defaults to the store setting.

    Raises:
        ValidationError: unknown category or brand
        ConflictError: barcode already in use
    """
    _check_references(patch)
    _ensure_barcode_free(patch.get("barcode"))

    p = Product()
    apply_product_patch(p, patch)
    if patch.get("low_stock_threshold") is None:
        p.low_stock_threshold = settings_service.get_settings().low_stock_threshold

    db.session.add(p)
    db.session.flush()

    log_activity(
        user_id=actor_user_id,
        action="product.created",
        entity_type="product",
        entity_id=p.id,
        details={"name": p.name, "barcode": p.barcode},
    )
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict, actor_user_id: int | None = None) -> Product | None:
    p = db.session.get(Product, product_id)
    if p is None:
        return None

    _check_references(patch)
    if "barcode" in patch:
        _ensure_barcode_free(patch["barcode"], exclude_id=product_id)

    apply_product_patch(p, patch)
    log_activity(
        user_id=actor_user_id,
        action="product.updated",
        entity_type="product",
        entity_id=product_id,
        details={"fields": sorted(k for k in patch if k in PRODUCT_MUTABLE_FIELDS)},
    )
    db.session.commit()
    return p


def delete_product(*, product_id: int, actor_user_id: int | None = None) -> bool:
    p = db.session.get(Product, product_id)
    if p is None:
        return False

    if db.session.query(SaleItem).filter_by(product_id=product_id).first():
        raise ConflictError("Cannot delete a product that has been sold")

    log_activity(
        user_id=actor_user_id,
        action="product.deleted",
        entity_type="product",
        entity_id=product_id,
        details={"name": p.name},
    )
    db.session.delete(p)
    db.session.commit()
    return True


def low_stock_products(*, include_buying_price: bool = True) -> list[dict]:
    return list_products(low_stock_only=True, include_buying_price=include_buying_price)["items"]


# ---------------------------------------------------------------------------
# Refill options
# ---------------------------------------------------------------------------

def list_refill_options(*, active_only: bool = False) -> list[dict]:
    q = db.session.query(RefillOption)
    if active_only:
        q = q.filter_by(is_active=True)
    return [r.to_dict() for r in q.order_by(RefillOption.volume_ml.asc(), RefillOption.id.asc()).all()]


def create_refill_option(*, patch: dict, actor_user_id: int | None = None) -> RefillOption:
    option = RefillOption(is_active=True)
    for k, v in patch.items():
        if k in REFILL_MUTABLE_FIELDS:
            setattr(option, k, v)
    db.session.add(option)
    db.session.flush()
    log_activity(
        user_id=actor_user_id,
        action="refill_option.created",
        entity_type="refill_option",
        entity_id=option.id,
        details={"name": option.name, "default_price": str(option.default_price)},
    )
    db.session.commit()
    return option


def update_refill_option(*, option_id: int, patch: dict, actor_user_id: int | None = None) -> RefillOption | None:
    option = db.session.get(RefillOption, option_id)
    if option is None:
        return None
    for k, v in patch.items():
        if k in REFILL_MUTABLE_FIELDS:
            setattr(option, k, v)
    log_activity(
        user_id=actor_user_id,
        action="refill_option.updated",
        entity_type="refill_option",
        entity_id=option_id,
        details={"fields": sorted(k for k in patch if k in REFILL_MUTABLE_FIELDS)},
    )
    db.session.commit()
    return option


def delete_refill_option(*, option_id: int, actor_user_id: int | None = None) -> bool:
    option = db.session.get(RefillOption, option_id)
    if option is None:
        return False
    log_activity(
        user_id=actor_user_id,
        action="refill_option.deleted",
        entity_type="refill_option",
        entity_id=option_id,
        details={"name": option.name},
    )
    db.session.delete(option)
    db.session.commit()
    return True
