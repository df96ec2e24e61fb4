from __future__ import annotations

from ..extensions import db
from hisobchi.time_utils import to_utc_z


class SellerProduct(db.Model):
    """
    Permission for a seller to hold and sell a product.

    One row per (seller, product) for the lifetime of the pair: unassigning
    flips is_active off and re-assigning flips it back on, so the row count
    for a pair never exceeds 1.
    """
    __tablename__ = "seller_products"
    __table_args__ = (
        db.UniqueConstraint("seller_id", "product_id", name="uq_seller_products_seller_product"),
        db.Index("ix_seller_products_seller_active", "seller_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False)
    unassigned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    seller = db.relationship("User", foreign_keys=[seller_id])
    product = db.relationship("Product", foreign_keys=[product_id])

    def __repr__(self) -> str:
        return f"<SellerProduct seller_id={self.seller_id} product_id={self.product_id} active={self.is_active}>"

    def to_dict(self, include: tuple = ()) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "is_active": self.is_active,
            "assigned_at": to_utc_z(self.assigned_at),
            "unassigned_at": to_utc_z(self.unassigned_at),
        }
        if "product" in include:
            data["product"] = self.product.to_dict() if self.product else None
        return data
