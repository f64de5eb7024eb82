#!/usr/bin/env python3
"""
Seed products from a JSON file (scripts/data/products.json by default).

Products are created with zero stock; the opening quantity is posted as an
ADJUSTMENT movement so the cached stock always matches the movement ledger.
Existing SKUs are skipped, so the script can be re-run safely.

Usage:
    python scripts/seed_products.py --file scripts/data/products.json
"""
import argparse
import json
import os
import sys
from decimal import Decimal

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from creditledger.db import SessionLocal, init_db
from creditledger.models.product import StockUnit
from creditledger.repositories.product_repo import ProductRepository
from creditledger.services.inventory_service import InventoryService
from creditledger.utils.units import combine_grams, combine_pieces

DEFAULT_SOURCE = os.path.join(os.path.dirname(__file__), "data", "products.json")


def _normalize_entry(entry):
    """Return a dict with keys: sku, name, stock_unit, units_per_box, reorder_level, selling_price, opening"""
    stock_unit = StockUnit(str(entry.get("stock_unit") or "PCS").upper()).value
    upb = entry.get("units_per_box")
    # opening stock may be given in display units (boxes + units, kg + g)
    if stock_unit == StockUnit.WEIGHT.value:
        opening = entry.get("grams")
        if opening is None:
            opening = combine_grams(entry.get("kg", 0), entry.get("g", 0))
    elif stock_unit == StockUnit.PCS.value:
        opening = entry.get("pieces")
        if opening is None:
            opening = combine_pieces(entry.get("boxes", 0), entry.get("units", 0), upb)
    else:
        opening = entry.get("bags", 0)

    return {
        "sku": entry.get("sku"),
        "name": entry.get("name") or entry.get("sku"),
        "stock_unit": stock_unit,
        "units_per_box": upb,
        "reorder_level": entry.get("reorder_level"),
        "selling_price": Decimal(str(entry.get("selling_price", "0"))),
        "opening": int(opening or 0),
    }


def seed_from_file(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    source_list = data["items"] if isinstance(data, dict) else data

    init_db()
    db = SessionLocal()
    repo = ProductRepository(db)
    inventory = InventoryService(db)
    created = 0
    try:
        for entry in map(_normalize_entry, source_list):
            if not entry["sku"] or repo.get_by_sku(entry["sku"]):
                continue
            opening = entry.pop("opening")
            p = repo.create(**entry)
            if opening:
                weight = p.is_weight
                inventory.record_movement(
                    p.id,
                    "ADJUSTMENT",
                    quantity=0 if weight else opening,
                    quantity_grams=opening if weight else None,
                    reference=f"OPENING:{p.sku}",
                    source_table="products",
                    source_id=p.id,
                    notes="Opening stock (seed)",
                )
            created += 1
        db.commit()
        print("Seeded products:", created)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=DEFAULT_SOURCE, help="Path to a JSON list of products")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed_from_file(args.file)
