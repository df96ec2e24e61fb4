from __future__ import annotations

from ..extensions import db
from hisobchi.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_SELLER = "seller"
ROLES = (ROLE_ADMIN, ROLE_SELLER)


class User(db.Model):
    """
    Admins and sellers, identified in requests by their Telegram id.

    Sellers are never hard-deleted: removal sets is_active=False and
    is_deleted=True so transfers and sales keep a valid seller reference.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("telegram_id", name="uq_users_telegram_id"),
        db.UniqueConstraint("phone_number", name="uq_users_phone_number"),
        db.Index("ix_users_role_active", "role", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Null until the seller opens the web-app for the first time
    telegram_id = db.Column(db.String(32), nullable=True)
    username = db.Column(db.String(64), nullable=True)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=True)
    phone_number = db.Column(db.String(32), nullable=True)
    avatar_url = db.Column(db.String(512), nullable=True)

    role = db.Column(db.String(16), nullable=False, default=ROLE_SELLER)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role} telegram_id={self.telegram_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "telegram_id": self.telegram_id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "avatar_url": self.avatar_url,
            "role": self.role,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
