from __future__ import annotations

from ..extensions import db
from hisobchi.time_utils import to_utc_z, utcnow


class Sale(db.Model):
    """
    Completed sale by a seller. Append-only.

    Written in the same transaction as the matching seller stock decrement,
    so every row here corresponds to quantity that left the system.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        # Seller history and date-range reports
        db.Index("ix_sales_seller_sold_at", "seller_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    # All amounts in minor units
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    seller = db.relationship("User", foreign_keys=[seller_id])
    product = db.relationship("Product", foreign_keys=[product_id])

    def __repr__(self) -> str:
        return f"<Sale id={self.id} seller_id={self.seller_id} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self, include: tuple = ()) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "sold_at": to_utc_z(self.sold_at),
            "created_at": to_utc_z(self.created_at),
        }
        if "product" in include:
            data["product"] = self.product.to_dict() if self.product else None
        if "seller" in include:
            data["seller"] = self.seller.to_dict() if self.seller else None
        return data
