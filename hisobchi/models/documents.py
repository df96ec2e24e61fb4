from __future__ import annotations

from ..extensions import db
from hisobchi.time_utils import to_utc_z, utcnow


TRANSFER_TYPE_TRANSFER = "transfer"
TRANSFER_TYPE_RETURN = "return"
TRANSFER_TYPES = (TRANSFER_TYPE_TRANSFER, TRANSFER_TYPE_RETURN)

TRANSFER_STATUS_COMPLETED = "completed"
TRANSFER_STATUS_CANCELLED = "cancelled"


class Transfer(db.Model):
    """
    Append-only record of a quantity movement between the warehouse and a seller.

    TYPES:
    - transfer: warehouse -> seller
    - return:   seller -> warehouse

    quantity is always the positive magnitude; direction comes from type.
    A return made against a specific outbound transfer points back to it
    through related_transfer_id. Rows are never updated after insert.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfers_quantity_positive"),
        db.Index("ix_transfers_seller_product", "seller_id", "product_id"),
        db.Index("ix_transfers_type_date", "type", "transfer_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    type = db.Column(db.String(16), nullable=False, default=TRANSFER_TYPE_TRANSFER)
    status = db.Column(db.String(16), nullable=False, default=TRANSFER_STATUS_COMPLETED)

    transfer_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    related_transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=True, index=True)

    # User attribution (null when performed outside a request, e.g. CLI)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    seller = db.relationship("User", foreign_keys=[seller_id])
    product = db.relationship("Product", foreign_keys=[product_id])
    related_transfer = db.relationship("Transfer", remote_side=[id])

    def __repr__(self) -> str:
        return f"<Transfer id={self.id} type={self.type} seller_id={self.seller_id} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self, include: tuple = ()) -> dict:
        data = {
            "id": self.id,
            "seller_id": self.seller_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "type": self.type,
            "status": self.status,
            "transfer_date": to_utc_z(self.transfer_date),
            "related_transfer_id": self.related_transfer_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if "product" in include:
            data["product"] = self.product.to_dict() if self.product else None
        if "seller" in include:
            data["seller"] = self.seller.to_dict() if self.seller else None
        return data
