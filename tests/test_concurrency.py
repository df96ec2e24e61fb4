"""
Threaded concurrency tests against a file-backed SQLite database.

Each worker runs in its own app context (own session, own connection), so
the database is the only thing serialising them. Run with:
    pytest tests/test_concurrency.py
"""
import os
import tempfile
import threading
import unittest

from hisobchi import create_app
from hisobchi.errors import InsufficientStock, InsufficientWarehouseStock
from hisobchi.extensions import db
from hisobchi.models import Category, Product, Sale, SellerStock, Transfer, User
from hisobchi.services import ledger_service, reconcile_service, sales_service, transfer_service
from hisobchi.services.concurrency import unit_of_work


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "DB_RETRY_ATTEMPTS": 5,
            "DB_RETRY_BACKOFF": 0.01,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            category = Category(name="Concurrency")
            db.session.add(category)
            db.session.commit()

            product = Product(
                name="Concurrent Product",
                sku="CONCUR-1",
                price_cents=1000,
                cost_price_cents=400,
                category_id=category.id,
                warehouse_quantity=10,
            )
            db.session.add(product)

            sellers = [
                User(first_name=f"Seller {i}", phone_number=f"+99890555000{i}", telegram_id=f"55{i}", role="seller")
                for i in range(2)
            ]
            db.session.add_all(sellers)
            db.session.commit()

            self.product_id = product.id
            self.seller_ids = [s.id for s in sellers]

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, targets):
        results = []
        lock = threading.Lock()

        def worker(target):
            with self.app.app_context():
                try:
                    target()
                    with lock:
                        results.append("ok")
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(t,)) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def _stock_seller(self, quantity):
        with self.app.app_context():
            transfer_service.transfer_to_seller(self.seller_ids[0], [(self.product_id, quantity)])
            db.session.remove()

    def test_concurrent_sales_never_oversell(self):
        self._stock_seller(10)
        seller_id = self.seller_ids[0]

        results = self._run_workers([
            lambda: sales_service.record_sale(seller_id, self.product_id, 6),
            lambda: sales_service.record_sale(seller_id, self.product_id, 6),
        ])

        self.assertEqual(results.count("ok"), 1, results)
        failures = [r for r in results if r != "ok"]
        self.assertIsInstance(failures[0], InsufficientStock)

        with self.app.app_context():
            stock = db.session.query(SellerStock).filter_by(seller_id=seller_id, product_id=self.product_id).one()
            self.assertEqual(stock.quantity, 4)
            self.assertEqual(db.session.query(Sale).count(), 1)

    def test_concurrent_ledger_decrease(self):
        self._stock_seller(10)
        seller_id = self.seller_ids[0]

        def decrease():
            with unit_of_work() as session:
                ledger_service.decrease(session, amount=6, seller_id=seller_id, product_id=self.product_id)

        results = self._run_workers([decrease, decrease])

        self.assertEqual(results.count("ok"), 1, results)
        with self.app.app_context():
            qty = ledger_service.current_quantity(db.session, seller_id=seller_id, product_id=self.product_id)
            self.assertEqual(qty, 4)

    def test_concurrent_transfers_drain_warehouse_once(self):
        results = self._run_workers([
            lambda sid=sid: transfer_service.transfer_to_seller(sid, [(self.product_id, 6)])
            for sid in self.seller_ids
        ])

        self.assertEqual(results.count("ok"), 1, results)
        failures = [r for r in results if r != "ok"]
        self.assertIsInstance(failures[0], InsufficientWarehouseStock)

        with self.app.app_context():
            product = db.session.get(Product, self.product_id)
            held = sum(s.quantity for s in db.session.query(SellerStock).all())
            self.assertEqual(product.warehouse_quantity, 4)
            self.assertEqual(held, 6)
            self.assertEqual(db.session.query(Transfer).count(), 1)

    def test_concurrent_first_transfers_share_one_row(self):
        seller_id = self.seller_ids[0]

        results = self._run_workers([
            lambda: transfer_service.transfer_to_seller(seller_id, [(self.product_id, 3)]),
            lambda: transfer_service.transfer_to_seller(seller_id, [(self.product_id, 4)]),
        ])

        self.assertEqual(results, ["ok", "ok"])
        with self.app.app_context():
            rows = db.session.query(SellerStock).filter_by(seller_id=seller_id).all()
            self.assertEqual(len(rows), 1)
            self.assertEqual(rows[0].quantity, 7)
            self.assertEqual(db.session.get(Product, self.product_id).warehouse_quantity, 3)
            self.assertEqual(reconcile_service.reconcile_seller_stocks(), [])


if __name__ == "__main__":
    unittest.main()
