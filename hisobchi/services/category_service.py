# Overview: Category CRUD. Names are unique; a category in use cannot be removed.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..errors import CategoryNotFound
from ..extensions import db
from ..models import Category, Product
from ..validation import ConflictError, enforce_rules_category
from .concurrency import run_with_retry, unit_of_work


def _get(session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound("Category not found", details={"category_id": category_id})
    return category


def _ensure_name_free(session, name: str, exclude_id: int | None = None) -> None:
    query = session.query(Category.id).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ConflictError("Category with this name already exists")


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    return _get(db.session, category_id)


def create_category(name) -> Category:
    name = enforce_rules_category(name)

    def _op():
        with unit_of_work() as session:
            _ensure_name_free(session, name)
            category = Category(name=name)
            session.add(category)
            try:
                session.flush()
            except IntegrityError:
                raise ConflictError("Category with this name already exists")
        return category

    return run_with_retry(_op)


def rename_category(category_id: int, name) -> Category:
    name = enforce_rules_category(name)

    def _op():
        with unit_of_work() as session:
            category = _get(session, category_id)
            _ensure_name_free(session, name, exclude_id=category.id)
            category.name = name
            try:
                session.flush()
            except IntegrityError:
                raise ConflictError("Category with this name already exists")
        return category

    return run_with_retry(_op)


def delete_category(category_id: int) -> None:
    def _op():
        with unit_of_work() as session:
            category = _get(session, category_id)
            in_use = session.query(func.count(Product.id)).filter(Product.category_id == category.id).scalar()
            if in_use:
                raise ConflictError(f"Category is used by {in_use} product(s) and cannot be deleted")
            session.delete(category)

    run_with_retry(_op)
