import unittest

from sqlalchemy.orm import sessionmaker

from app.database import Base, build_engine
from app.models import import_all_models
from app.services.product_service import create_product, list_lots, start_using_lot
from app.services.service_type_service import create_service_type
from app.services.store_service import add_staff_member, register_store


def make_session_factory(database_url="sqlite:///:memory:"):
    import_all_models()
    engine = build_engine(database_url)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
    return engine, factory


class SalonTestCase(unittest.TestCase):
    """One store, its owner and a technician; in-memory unless overridden."""

    database_url = "sqlite:///:memory:"

    def setUp(self):
        self.engine, self.session_factory = make_session_factory(self.database_url)
        self.db = self.session_factory()
        self.store, self.owner = register_store(
            self.db,
            name="Polished Studio",
            owner_email="owner@polished.test",
            owner_name="Owner",
            password="secret-pass",
            code="polished-1000",
        )
        self.tech = add_staff_member(
            self.db,
            store_id=self.store.id,
            email="tech@polished.test",
            name="Tech",
            password="secret-pass",
        )

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def make_product(self, *, quantity=2, capacity=10.0, start=0, category="GEL_COLOR", **extra):
        product = create_product(
            self.db,
            self.store.id,
            brand=extra.pop("brand", "Luxe"),
            name=extra.pop("name", f"{category} product"),
            category=category,
            capacity=capacity,
            capacity_unit="ml",
            total_quantity=quantity,
            actor_id=self.owner.id,
            **extra,
        )
        for lot in list_lots(self.db, self.store.id, product.id)[:start]:
            start_using_lot(self.db, self.store.id, lot.id, actor_id=self.owner.id)
        return product

    def make_service_type(self, name="One Color Gel", **extra):
        values = dict(
            product_type="GEL_COLOR",
            default_usage_amount=0.5,
            short_length_rate=80,
            medium_length_rate=100,
            long_length_rate=150,
            is_gel_service=True,
        )
        values.update(extra)
        return create_service_type(
            self.db,
            self.store.id,
            name=name,
            actor_id=self.owner.id,
            **values,
        )

    def in_use_lots(self, product):
        return list_lots(self.db, self.store.id, product.id, in_use=True)
