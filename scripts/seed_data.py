import argparse

from sqlalchemy import select

from app.core.logging import setup_logging
from app.database import Base, SessionLocal, engine
from app.models import Store, import_all_models
from app.services.product_service import create_product, list_lots, start_using_lot
from app.services.service_type_service import create_service_type
from app.services.store_service import add_staff_member, register_store
from app.services.usage_service import RelatedUsageEntry, record_usage


def parse_args():
    parser = argparse.ArgumentParser(description="Seed a sample salon with products and services.")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear existing data before seeding.",
    )
    return parser.parse_args()


def main():
    setup_logging()
    args = parse_args()

    import_all_models()
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.reset:
            for table in reversed(Base.metadata.sorted_tables):
                db.execute(table.delete())
            db.commit()

        has_store = db.execute(select(Store.id).limit(1)).first()
        if has_store:
            print("Seed skipped: stores already exist.")
            return

        store, owner = register_store(
            db,
            name="Polished Studio",
            owner_email="owner@polished.example",
            owner_name="Studio Owner",
            password="change-me",
            address="12 Market Street",
            phone="555-0100",
        )
        tech = add_staff_member(
            db,
            store_id=store.id,
            email="tech@polished.example",
            name="Lead Technician",
            password="change-me",
            created_by=owner.id,
        )

        gel_color = create_product(
            db,
            store.id,
            brand="Luxe",
            name="Gel Color",
            category="GEL_COLOR",
            color_code="LX-201",
            color_name="Rose Nude",
            price=18.0,
            capacity=15.0,
            capacity_unit="ml",
            total_quantity=3,
            actor_id=owner.id,
        )
        base_gel = create_product(
            db,
            store.id,
            brand="Luxe",
            name="Base Gel",
            category="GEL_BASE",
            price=14.0,
            capacity=15.0,
            capacity_unit="ml",
            total_quantity=2,
            actor_id=owner.id,
        )
        top_gel = create_product(
            db,
            store.id,
            brand="Luxe",
            name="Top Gel",
            category="GEL_TOP",
            price=14.0,
            capacity=15.0,
            capacity_unit="ml",
            total_quantity=2,
            actor_id=owner.id,
        )
        for product in (gel_color, base_gel, top_gel):
            start_using_lot(db, store.id, list_lots(db, store.id, product.id)[0].id, actor_id=owner.id)

        one_color = create_service_type(
            db,
            store.id,
            name="One Color Gel",
            product_type="GEL_COLOR",
            default_usage_amount=0.5,
            is_gel_service=True,
            requires_base=True,
            requires_top=True,
            products=[
                {"product_id": base_gel.id, "usage_amount": 0.3, "product_role": "BASE", "order": 0},
                {"product_id": gel_color.id, "usage_amount": 0.5, "product_role": "COLOR", "order": 1},
                {"product_id": top_gel.id, "usage_amount": 0.3, "product_role": "TOP", "order": 2},
            ],
            actor_id=owner.id,
        )

        for nail_length in ("SHORT", "MEDIUM", "LONG"):
            record_usage(
                db,
                store.id,
                product_id=gel_color.id,
                service_type_id=one_color.id,
                nail_length=nail_length,
                user_id=tech.id,
                related=[
                    RelatedUsageEntry(product_id=base_gel.id, amount=0.3, role="BASE", order=0),
                    RelatedUsageEntry(product_id=top_gel.id, amount=0.3, role="TOP", order=2),
                ],
            )

        print(f"Seed complete: store {store.code} (id {store.id}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
