from __future__ import annotations

from ..extensions import db
from hisobchi.time_utils import to_utc_z


class Category(db.Model):
    """Product grouping. Names are globally unique."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data plus the central warehouse counter.

    WAREHOUSE RULE:
    warehouse_quantity is set when the product is created and raised by
    restocking. Every other change goes through the transfer engine as a
    conditional UPDATE, so the column never goes negative and is never
    overwritten from a request payload.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("warehouse_quantity >= 0", name="ck_products_warehouse_quantity_non_negative"),
        db.Index("ix_products_category_active", "category_id", "is_active"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=True, index=True)
    color = db.Column(db.String(64), nullable=True)
    image = db.Column(db.String(512), nullable=True)

    # Authoritative storage in minor units (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    warehouse_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} warehouse={self.warehouse_quantity}>"

    def to_dict(self, include: tuple = ()) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "color": self.color,
            "image": self.image,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "category_id": self.category_id,
            "warehouse_quantity": self.warehouse_quantity,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if "category" in include:
            data["category"] = self.category.to_dict() if self.category else None
        return data


class SellerStock(db.Model):
    """
    A seller's on-hand quantity of one product (ledger entry).

    One row per (seller, product). The row is created with quantity 0 the
    first time stock is sent to the seller and deleted only once all of it
    has been returned. quantity is mutated exclusively by
    services.ledger_service via conditional UPDATEs.
    """
    __tablename__ = "seller_stocks"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "product_id", name="uq_seller_stocks_seller_product"),
        db.CheckConstraint("quantity >= 0", name="ck_seller_stocks_quantity_non_negative"),
        db.Index("ix_seller_stocks_product_seller", "product_id", "seller_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    last_transfer_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    seller = db.relationship("User", foreign_keys=[seller_id])
    product = db.relationship("Product", foreign_keys=[product_id])

    def __repr__(self) -> str:
        return f"<SellerStock id={self.id} seller_id={self.seller_id} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self, include: tuple = ()) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "last_transfer_date": to_utc_z(self.last_transfer_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if "product" in include:
            data["product"] = self.product.to_dict() if self.product else None
        if "seller" in include:
            data["seller"] = self.seller.to_dict() if self.seller else None
        return data
